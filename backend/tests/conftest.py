"""
PEACE バックエンド - 共通テストフィクスチャ

設計方針:
- 外部システム（PostgreSQL / Redis / Google）は一切呼び出さない
- リレーショナルストアは aiosqlite のインメモリ DB で代替する
- Redis は TTL と時計を制御できる FakeRedis で代替する
- 各テストは独立して実行可能（サービス起動不要）
"""
from __future__ import annotations

import os

# app.core.config の読み込み前に設定する
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["LOG_LEVEL"] = "WARNING"

import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

import httpx
import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.security import TokenService, get_password_hash
from app.db.base import Base
from app.models.mood_record import MoodRecord
from app.models.user import User
from app.services.google_oauth import (
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    GoogleOAuthProvider,
)
from app.services.presence_store import PresenceStore
from app.services.presence_service import PresenceService
from app.services.record_store import RecordStore
from app.services.user_store import UserStore

TEST_SECRET = "test-secret-key"
DEFAULT_PASSWORD = "Pass1word"


# =============================================================================
# FakeRedis
# presence ストアが使うコマンドだけを実装したインメモリ Redis。
# `advance()` で時計を進めると TTL 切れのキーが消える。
# =============================================================================

class FakeRedis:
    """
    TTL を持つインメモリ Redis

    - `clock()`: 現在の擬似時刻（Unix 秒）
    - `advance(seconds)`: 擬似時刻を進める
    - `calls`: 実行されたコマンド名（テスト内で検証可能）
    """

    def __init__(self, start: float = 1_700_000_000.0):
        self._now = start
        self._values: Dict[str, Tuple[str, Optional[float]]] = {}
        self._sets: Dict[str, Set[str]] = {}
        self.calls: List[str] = []
        self.closed = False

    def clock(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def _live(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self._now:
            del self._values[key]
            return None
        return value

    def peek(self, key: str) -> Optional[str]:
        """コマンド履歴に残さずに値を読む"""
        return self._live(key)

    def ttl_of(self, key: str) -> Optional[float]:
        if self._live(key) is None:
            return None
        expires_at = self._values[key][1]
        return None if expires_at is None else expires_at - self._now

    async def ping(self) -> bool:
        self.calls.append("ping")
        return True

    async def get(self, key: str) -> Optional[str]:
        self.calls.append("get")
        return self._live(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self.calls.append("set")
        self._values[key] = (value, self._now + ex if ex else None)
        return True

    async def mget(self, keys: Iterable[str], *args: str) -> List[Optional[str]]:
        self.calls.append("mget")
        all_keys = list(keys) if not isinstance(keys, str) else [keys]
        all_keys.extend(args)
        return [self._live(k) for k in all_keys]

    async def delete(self, *keys: str) -> int:
        self.calls.append("delete")
        removed = 0
        for key in keys:
            if self._values.pop(key, None) is not None:
                removed += 1
            if self._sets.pop(key, None) is not None:
                removed += 1
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for k in keys if self._live(k) is not None or k in self._sets)

    async def sadd(self, key: str, *members: str) -> int:
        self.calls.append("sadd")
        members_set = self._sets.setdefault(key, set())
        before = len(members_set)
        members_set.update(members)
        return len(members_set) - before

    async def srem(self, key: str, *members: str) -> int:
        self.calls.append("srem")
        members_set = self._sets.get(key, set())
        removed = len(members_set & set(members))
        members_set.difference_update(members)
        return removed

    async def smembers(self, key: str) -> Set[str]:
        self.calls.append("smembers")
        return set(self._sets.get(key, set()))

    async def scard(self, key: str) -> int:
        self.calls.append("scard")
        return len(self._sets.get(key, set()))

    async def aclose(self) -> None:
        self.closed = True


class BrokenRedis(FakeRedis):
    """すべてのコマンドで接続エラーを返す Redis"""

    async def get(self, key: str) -> Optional[str]:
        raise RedisConnectionError("connection refused")

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        raise RedisConnectionError("connection refused")

    async def smembers(self, key: str) -> Set[str]:
        raise RedisConnectionError("connection refused")

    async def scard(self, key: str) -> int:
        raise RedisConnectionError("connection refused")


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def user_store(session) -> UserStore:
    return UserStore(session)


@pytest.fixture
def record_store(session) -> RecordStore:
    return RecordStore(session)


# =============================================================================
# Tokens / Presence
# =============================================================================

@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret=TEST_SECRET)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def presence_store(fake_redis) -> PresenceStore:
    return PresenceStore(fake_redis, ttl=timedelta(seconds=20), clock=fake_redis.clock)


@pytest.fixture
def presence_service(presence_store) -> PresenceService:
    return PresenceService(presence_store)


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(user_store) -> Callable[..., Any]:
    """ローカル認証ユーザーを作成するファクトリ"""

    async def _make(
        email: str = "a@x.io",
        username: str = "alice",
        password: str = DEFAULT_PASSWORD,
        **fields: Any,
    ) -> User:
        user = User(
            email=email,
            username=username,
            password_hash=get_password_hash(password),
            **fields,
        )
        return await user_store.create(user)

    return _make


@pytest.fixture
def make_record(record_store) -> Callable[..., Any]:
    """作成日時を指定して記録を作るファクトリ"""

    async def _make(
        user_id: uuid.UUID,
        happy_level: int = 5,
        energy_level: int = 5,
        created_at: Optional[datetime] = None,
        **fields: Any,
    ) -> MoodRecord:
        if created_at is not None:
            fields["created_at"] = created_at
        record = MoodRecord(
            user_id=user_id,
            happy_level=happy_level,
            energy_level=energy_level,
            status=fields.pop("status", "private"),
            **fields,
        )
        return await record_store.create(record)

    return _make


# =============================================================================
# Google OAuth
# httpx.MockTransport で token / userinfo エンドポイントを差し替える。
# =============================================================================

GOOGLE_PROFILE = {
    "id": "google-123",
    "email": "Grace.Hopper@Example.com",
    "given_name": "Grace",
    "family_name": "Hopper",
    "picture": "https://example.com/grace.png",
    "verified_email": True,
}


def google_transport(
    token_status: int = 200,
    token_body: Optional[Dict[str, Any]] = None,
    userinfo_status: int = 200,
    userinfo_body: Optional[Any] = None,
    requests: Optional[List[httpx.Request]] = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        url = str(request.url)
        if url == GOOGLE_TOKEN_URL:
            body = token_body if token_body is not None else {"access_token": "ya29.token", "token_type": "Bearer"}
            return httpx.Response(token_status, json=body)
        if url == GOOGLE_USERINFO_URL:
            body = userinfo_body if userinfo_body is not None else GOOGLE_PROFILE
            if isinstance(body, str):
                return httpx.Response(userinfo_status, text=body)
            return httpx.Response(userinfo_status, json=body)
        return httpx.Response(404, json={"error": "not_found"})

    return httpx.MockTransport(handler)


def google_provider(transport: httpx.MockTransport) -> GoogleOAuthProvider:
    return GoogleOAuthProvider(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:3000/auth/google/callback",
        transport=transport,
    )


# =============================================================================
# API
# 本番の app に依存関係の差し替えを入れて使う（lifespan は起動しない）。
# =============================================================================

@pytest.fixture
def api_app(session_factory, token_service, fake_redis):
    from app.api.deps import get_oauth_providers, get_presence_store, get_token_service
    from app.api.v1.endpoints.presence import ConnectionConfig, get_connection_config
    from app.db.base import get_async_session
    from app.main import app

    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_presence_store] = lambda: PresenceStore(
        fake_redis, ttl=timedelta(seconds=20), clock=fake_redis.clock
    )
    app.dependency_overrides[get_oauth_providers] = lambda: {
        "google": google_provider(google_transport())
    }
    app.dependency_overrides[get_connection_config] = lambda: ConnectionConfig(
        heartbeat_interval=10.0,
        write_timeout=5.0,
        max_message_size=1024,
        presence_ttl=20.0,
        read_timeout=60.0,
    )
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(api_app):
    transport = httpx.ASGITransport(app=api_app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def ws_client(api_app):
    from starlette.testclient import TestClient

    return TestClient(api_app)


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register_and_login(
    client: httpx.AsyncClient,
    email: str = "a@x.io",
    username: str = "alice",
    password: str = DEFAULT_PASSWORD,
) -> Dict[str, Any]:
    """登録してログインし、ログイン応答の data を返す"""
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "username": username, "password": password},
    )
    assert response.status_code == 201, response.text
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["data"]
