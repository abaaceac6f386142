"""
PEACE - Celery Tasks
名言の一括取り込みとプレゼンス補正
"""
import asyncio
import logging

from app.workers.celery_app import celery_app
from app.db.base import async_session_maker, engine
from app.db.redis import close_redis, get_redis
from app.core.config import settings
from app.services.presence_service import PresenceService
from app.services.presence_store import PresenceStore
from app.services.quote_importer import DEFAULT_BATCH_SIZE, QuoteImporter

logger = logging.getLogger(__name__)


def run_async(coro):
    """非同期関数を同期的に実行"""
    return asyncio.run(coro)


@celery_app.task
def import_quotes_task(path: str, dry_run: bool = False, batch_size: int = DEFAULT_BATCH_SIZE):
    """
    CSV ファイルから名言を取り込む

    ファイルが読めない場合はリトライせずにエラーを返す。
    """
    async def _import():
        # fork されたワーカーで親プロセスの接続を使い回さない
        await engine.dispose()
        importer = QuoteImporter(async_session_maker)
        return await importer.run(path, dry_run=dry_run, batch_size=batch_size)

    try:
        stats = run_async(_import())
    except OSError as e:
        logger.error(f"Quote import could not open {path}: {e}")
        return {"status": "error", "message": str(e)}

    logger.info(f"Quote import task finished for {path}")
    return {
        "status": "completed",
        "processed": stats.processed,
        "skipped": stats.skipped,
        "errors": stats.errors,
        "dry_run": dry_run,
    }


@celery_app.task
def reconcile_presence_task():
    """期限切れのユーザーをオンライン集合から取り除く"""
    async def _reconcile():
        try:
            service = PresenceService(PresenceStore(get_redis(), ttl=settings.presence_ttl))
            return await service.reconcile()
        finally:
            await close_redis()

    online = run_async(_reconcile())
    return {"status": "completed", "online": online}
