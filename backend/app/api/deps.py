"""
PEACE - API Dependencies
認証とサービス組み立ての依存関係

テストでは app.dependency_overrides でストアや外部プロバイダを差し替える。
"""
from typing import Dict, Optional

import redis.asyncio as aioredis
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import UnauthorizedError
from app.core.security import TokenClaims, TokenService, token_service
from app.core.trace_context import bind_user_id
from app.db.base import get_async_session
from app.db.redis import get_redis
from app.models.user import User
from app.services.auth_service import AuthService, OAuthProvider
from app.services.google_oauth import build_google_provider
from app.services.presence_service import PresenceService
from app.services.presence_store import PresenceStore
from app.services.quote_service import QuoteService
from app.services.record_service import RecordService
from app.services.record_store import RecordStore
from app.services.user_service import UserService
from app.services.user_store import UserStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_token_service() -> TokenService:
    return token_service


def get_oauth_providers() -> Dict[str, OAuthProvider]:
    """設定済みの外部認証プロバイダ"""
    providers: Dict[str, OAuthProvider] = {}
    if settings.is_google_available():
        providers["google"] = build_google_provider()
    return providers


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_token_service),
) -> TokenClaims:
    """Authorization: Bearer <access-token> を検証"""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("authorization header is required")
    claims = tokens.validate_access(credentials.credentials)
    bind_user_id(claims.user_id)
    return claims


async def get_current_user_id(claims: TokenClaims = Depends(get_current_claims)) -> str:
    return claims.user_id


def get_user_store(session: AsyncSession = Depends(get_async_session)) -> UserStore:
    return UserStore(session)


def get_record_store(session: AsyncSession = Depends(get_async_session)) -> RecordStore:
    return RecordStore(session)


def get_presence_store(redis: aioredis.Redis = Depends(get_redis)) -> PresenceStore:
    return PresenceStore(redis, ttl=settings.presence_ttl)


def get_auth_service(
    user_store: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
    providers: Dict[str, OAuthProvider] = Depends(get_oauth_providers),
) -> AuthService:
    return AuthService(user_store, tokens, providers)


def get_user_service(user_store: UserStore = Depends(get_user_store)) -> UserService:
    return UserService(user_store)


def get_record_service(
    record_store: RecordStore = Depends(get_record_store),
    user_store: UserStore = Depends(get_user_store),
) -> RecordService:
    return RecordService(record_store, user_store)


def get_quote_service(session: AsyncSession = Depends(get_async_session)) -> QuoteService:
    return QuoteService(session)


def get_presence_service(store: PresenceStore = Depends(get_presence_store)) -> PresenceService:
    return PresenceService(store)


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """トークンのユーザーを取得（削除済み・存在しない場合は NotFound）"""
    return await user_service.get_profile(user_id)
