"""
PEACE - Presence Store (Redis)
TTL 付きのオンライン状態と、オンラインユーザー集合の管理

キー:
- presence:user:<id>  オンライン状態の JSON（TTL 付き）
- presence:online     オンラインユーザー ID の集合（TTL なし）

集合と個別キーは TTL 切れでずれることがあるため、
list_online() で期限切れの ID を集合から取り除く。
"""
import logging
import time
from datetime import timedelta
from typing import Callable, List, Optional

import redis.asyncio as aioredis
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import store_errors
from app.schemas.presence import OnlineStatus

logger = logging.getLogger(__name__)

USER_KEY_PREFIX = "presence:user:"
ONLINE_SET_KEY = "presence:online"


def user_key(user_id: str) -> str:
    return f"{USER_KEY_PREFIX}{user_id}"


class PresenceStore:
    """Redis 上のプレゼンス情報"""

    def __init__(
        self,
        redis: aioredis.Redis,
        ttl: timedelta = timedelta(seconds=20),
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis
        self.ttl = ttl
        self.clock = clock

    def now(self) -> int:
        return int(self.clock())

    async def save(self, status: OnlineStatus, ttl: Optional[timedelta] = None) -> None:
        """状態を TTL 付きで保存し、オンラインなら集合に追加（オフラインなら除外）"""
        expiry = max(1, int((ttl or self.ttl).total_seconds()))
        with store_errors("presence_store.save"):
            await self.redis.set(user_key(status.user_id), status.to_json(), ex=expiry)
            if status.is_online:
                await self.redis.sadd(ONLINE_SET_KEY, status.user_id)
            else:
                await self.redis.srem(ONLINE_SET_KEY, status.user_id)

    async def get(self, user_id: str) -> Optional[OnlineStatus]:
        with store_errors("presence_store.get"):
            raw = await self.redis.get(user_key(user_id))
        if raw is None:
            return None
        return self._decode(user_id, raw)

    async def list_online(self) -> List[OnlineStatus]:
        with store_errors("presence_store.list_online"):
            members = await self.redis.smembers(ONLINE_SET_KEY)
            user_ids = sorted(members)
            if not user_ids:
                return []

            values = await self.redis.mget([user_key(uid) for uid in user_ids])

            statuses: List[OnlineStatus] = []
            stale: List[str] = []
            for uid, raw in zip(user_ids, values):
                status = self._decode(uid, raw) if raw is not None else None
                if status is None or not status.is_online:
                    stale.append(uid)
                    continue
                statuses.append(status)

            if stale:
                await self.redis.srem(ONLINE_SET_KEY, *stale)
                logger.debug(f"Removed {len(stale)} expired ids from online set")
        return statuses

    async def count(self) -> int:
        """集合のサイズ（多少ずれる可能性あり、list_online で補正される）"""
        with store_errors("presence_store.count"):
            return int(await self.redis.scard(ONLINE_SET_KEY))

    async def delete(self, user_id: str) -> None:
        with store_errors("presence_store.delete"):
            await self.redis.delete(user_key(user_id))
            await self.redis.srem(ONLINE_SET_KEY, user_id)

    async def update_last_seen(self, user_id: str) -> Optional[OnlineStatus]:
        """last_seen を現在時刻に更新（キーが存在しない場合は何もしない）"""
        status = await self.get(user_id)
        if status is None:
            return None
        status.last_seen = self.now()
        await self.save(status)
        return status

    def _decode(self, user_id: str, raw: str) -> Optional[OnlineStatus]:
        try:
            return OnlineStatus.from_json(raw)
        except PydanticValidationError:
            logger.warning(f"Discarding unreadable presence entry for {user_id}")
            return None
