"""
PEACE - Presence Service
接続ライフサイクルに合わせたオンライン状態の更新と照会
"""
import logging
from typing import List, Optional

from app.core.logger import trace_execution
from app.schemas.presence import OnlineStatus
from app.services.presence_store import PresenceStore

logger = logging.getLogger(__name__)


class PresenceService:
    """
    プレゼンスオーケストレーター

    - set_online / heartbeat: TTL 付きでオンライン状態を保存（TTL を延長）
    - set_offline: 切断時に即座に集合から外す
    - touch: クライアントの ping で last_seen を更新
    """

    def __init__(self, store: PresenceStore):
        self.store = store

    def _status(self, user_id: str, user_email: str, is_online: bool) -> OnlineStatus:
        return OnlineStatus(
            user_id=str(user_id),
            user_email=user_email,
            is_online=is_online,
            last_seen=self.store.now(),
        )

    @trace_execution("PresenceService", "set_online")
    async def set_online(self, user_id: str, user_email: str) -> OnlineStatus:
        status = self._status(user_id, user_email, True)
        await self.store.save(status)
        return status

    @trace_execution("PresenceService", "set_offline")
    async def set_offline(self, user_id: str, user_email: str) -> OnlineStatus:
        status = self._status(user_id, user_email, False)
        await self.store.save(status)
        return status

    async def heartbeat(self, user_id: str, user_email: str) -> OnlineStatus:
        """接続が生きている間、定期的にオンライン状態を保存し直す"""
        status = self._status(user_id, user_email, True)
        await self.store.save(status)
        return status

    async def touch(self, user_id: str) -> Optional[OnlineStatus]:
        return await self.store.update_last_seen(str(user_id))

    async def get_status(self, user_id: str) -> Optional[OnlineStatus]:
        return await self.store.get(str(user_id))

    async def is_online(self, user_id: str) -> bool:
        status = await self.get_status(user_id)
        return status is not None and status.is_online

    async def list_online(self) -> List[OnlineStatus]:
        return await self.store.list_online()

    async def count_online(self) -> int:
        return await self.store.count()

    async def reconcile(self) -> int:
        """期限切れ ID を集合から取り除き、残ったオンライン数を返す"""
        statuses = await self.store.list_online()
        logger.info(f"Presence reconciled: {len(statuses)} users online")
        return len(statuses)
