"""
PEACE - Celery Application
非同期タスク処理の設定

キュー設計:
  - import_queue: 名言 CSV の一括取り込み
  - presence: プレゼンス集合の定期的な補正
"""
from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "peace",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.workers.tasks"],
)

# Celery設定
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# タスクルーティング
celery_app.conf.task_routes = {
    "app.workers.tasks.import_quotes_task": {"queue": "import_queue"},
    "app.workers.tasks.reconcile_presence_task": {"queue": "presence"},
}

# 取り込みは大きなファイルを想定してタイムリミットを長くする
celery_app.conf.task_annotations = {
    "app.workers.tasks.import_quotes_task": {
        "time_limit": 1800,
        "soft_time_limit": 1740,
    },
}

# Celery Beat スケジュール
celery_app.conf.beat_schedule = {
    "reconcile-presence-every-minute": {
        "task": "app.workers.tasks.reconcile_presence_task",
        "schedule": 60.0,
    },
}
