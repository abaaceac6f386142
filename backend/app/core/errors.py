"""
PEACE - Application Errors
ドメイン共通の例外階層と、ストア例外の変換

各例外は API エンベロープの code と HTTP ステータスを持ち、
エッジ（FastAPI の例外ハンドラ）でそのままレスポンスに変換される。
"""
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# レスポンスコード
CODE_SUCCESS = "SUCCESS"
CODE_BAD_REQUEST = "BAD_REQUEST"
CODE_UNAUTHORIZED = "UNAUTHORIZED"
CODE_FORBIDDEN = "FORBIDDEN"
CODE_NOT_FOUND = "NOT_FOUND"
CODE_SERVER_ERROR = "SERVER_ERROR"


class AppError(Exception):
    """アプリケーション例外の基底クラス"""

    code: str = CODE_SERVER_ERROR
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    code = CODE_BAD_REQUEST
    status_code = 400


class NotFoundError(AppError):
    code = CODE_NOT_FOUND
    status_code = 404


class ConflictError(AppError):
    """
    一意制約違反

    既存クライアントとの互換のため、エンベロープの code は BAD_REQUEST のまま
    HTTP ステータスだけ 409 を返す。
    """

    code = CODE_BAD_REQUEST
    status_code = 409


class UnauthorizedError(AppError):
    code = CODE_UNAUTHORIZED
    status_code = 401


class InvalidTokenError(UnauthorizedError):
    """署名・有効期限・トークン種別の検証失敗"""


class ForbiddenError(AppError):
    code = CODE_FORBIDDEN
    status_code = 403


class UpstreamError(AppError):
    """外部プロバイダ（OAuth 等）からの異常応答"""

    code = CODE_SERVER_ERROR
    status_code = 502


class InvalidOAuthCodeError(UpstreamError):
    """プロバイダが認可コードを invalid_grant で拒否した"""


class MalformedUpstreamResponseError(UpstreamError):
    """プロバイダ応答のパースに失敗した"""


class InternalError(AppError):
    code = CODE_SERVER_ERROR
    status_code = 500


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    ストア層の例外を InternalError に変換する

    使い方:
        with store_errors("user_store.create"):
            await session.commit()
    """
    try:
        yield
    except AppError:
        raise
    except (SQLAlchemyError, RedisError) as e:
        logger.error(f"{operation} failed: {e}", exc_info=True)
        raise InternalError(f"{operation}: {e.__class__.__name__}") from e


@asynccontextmanager
async def session_errors(session: AsyncSession, operation: str) -> AsyncIterator[None]:
    """
    store_errors のセッション版

    失敗したセッションはロールバックしてから InternalError を送出する。
    同じリクエスト内の後続の操作はそのまま続行できる。
    """
    try:
        yield
    except AppError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"{operation} failed: {e}", exc_info=True)
        try:
            await session.rollback()
        except SQLAlchemyError as rollback_error:
            logger.error(f"{operation} rollback failed: {rollback_error}")
        raise InternalError(f"{operation}: {e.__class__.__name__}") from e
