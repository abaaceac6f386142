"""
PEACE - Redis Client
プレゼンス用 Redis クライアントの生成と破棄
"""
import logging
from typing import Optional

import redis.asyncio as aioredis

from app.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[aioredis.Redis] = None


def create_redis(url: Optional[str] = None) -> aioredis.Redis:
    return aioredis.from_url(
        url or settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        health_check_interval=30,
    )


def get_redis() -> aioredis.Redis:
    """プロセス共有の Redis クライアントを取得（初回呼び出しで生成）"""
    global _client
    if _client is None:
        _client = create_redis()
    return _client


async def check_redis() -> None:
    """起動時の疎通確認"""
    await get_redis().ping()


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        logger.info("Redis connection closed")
        _client = None
