"""
PEACE - Database Base
SQLAlchemy基盤設定
"""
from typing import AsyncGenerator

from sqlalchemy import MetaData, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings
from app.core.timeutil import utc_now  # noqa: F401  (モデルの default に使用)

# 命名規則の設定
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """すべてのモデルの基底クラス"""

    metadata = metadata


def connect_args_for(database_url: str, sslmode: str) -> dict:
    """asyncpg には sslmode を ssl 引数として渡す"""
    if database_url.startswith("postgresql+asyncpg"):
        return {"ssl": sslmode}
    return {}


def build_engine(database_url: str) -> AsyncEngine:
    """接続URLから非同期エンジンを作成"""
    engine_kwargs = {
        "echo": False,
        "connect_args": connect_args_for(database_url, settings.postgres_sslmode),
    }

    # SQLite以外（PostgreSQL等）の場合のみ、プーリング設定を追加
    if not database_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.database_pool_size
        engine_kwargs["max_overflow"] = settings.database_max_overflow
        engine_kwargs["pool_pre_ping"] = True

    return create_async_engine(database_url, **engine_kwargs)


# 非同期エンジン
engine = build_engine(settings.database_url)

# 非同期セッションファクトリ
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """非同期セッションを取得するジェネレータ"""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def check_database(target: AsyncEngine = engine) -> None:
    """起動時の疎通確認（失敗時は例外をそのまま送出）"""
    async with target.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def create_tables(target: AsyncEngine = engine) -> None:
    """開発環境用: マイグレーションを介さずにテーブルを作成"""
    # モデルをメタデータに登録する
    import app.models  # noqa: F401

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
