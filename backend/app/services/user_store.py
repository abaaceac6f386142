"""
PEACE - User Store
ユーザーの永続化と一意性チェック

論理削除済みのユーザーは検索・一意性チェックの対象外とする。
"""
import logging
import uuid
from typing import Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictError, NotFoundError, session_errors
from app.core.timeutil import utc_now
from app.models.user import User

logger = logging.getLogger(__name__)

USERNAME_INDEX = "uq_users_username_active"


def _as_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError("user not found")


def violated_constraint(error: IntegrityError) -> str:
    """
    違反した一意制約の名前

    asyncpg は例外に constraint_name を持つ。取得できない場合（SQLite）は
    メッセージの1行目を使う。DETAIL 行はキーの値を含むため見ない。
    """
    for source in (getattr(error.orig, "__cause__", None), error.orig):
        name = getattr(source, "constraint_name", None)
        if name:
            return name
    lines = str(error.orig).splitlines()
    return lines[0] if lines else ""


def conflict_message(error: IntegrityError) -> str:
    constraint = violated_constraint(error)
    if USERNAME_INDEX in constraint or "users.username" in constraint:
        return "username already taken"
    return "email already registered"


class UserStore:
    """ユーザーテーブルへのアクセス"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        self.session.add(user)
        try:
            async with session_errors(self.session, "user_store.create"):
                try:
                    await self.session.commit()
                except IntegrityError as e:
                    await self.session.rollback()
                    raise ConflictError(conflict_message(e)) from e
                await self.session.refresh(user)
        except ConflictError:
            logger.info(f"Duplicate user rejected: {user.email}")
            raise
        return user

    async def get(self, user_id: Union[str, uuid.UUID]) -> User:
        return await self._find_one(User.id == _as_uuid(user_id))

    async def find(
        self,
        user_id: Optional[Union[str, uuid.UUID]] = None,
        email: Optional[str] = None,
        username: Optional[str] = None,
    ) -> User:
        """id / email / username のいずれか1つで検索"""
        if user_id is not None:
            return await self.get(user_id)
        if email is not None:
            return await self._find_one(User.email == email.strip().lower())
        if username is not None:
            return await self._find_one(User.username == username)
        raise ValueError("one of user_id, email or username is required")

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            return await self.find(email=email)
        except NotFoundError:
            return None

    async def get_by_username(self, username: str) -> Optional[User]:
        try:
            return await self.find(username=username)
        except NotFoundError:
            return None

    async def email_exists(self, email: str) -> bool:
        return await self._exists(User.email == email.strip().lower())

    async def username_exists(self, username: str) -> bool:
        return await self._exists(User.username == username)

    async def update(self, user: User) -> User:
        user.updated_at = utc_now()
        self.session.add(user)
        async with session_errors(self.session, "user_store.update"):
            try:
                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                raise ConflictError("email or username already taken") from e
            await self.session.refresh(user)
        return user

    async def delete(self, user_id: Union[str, uuid.UUID]) -> None:
        """論理削除（deleted_at を設定し、非アクティブにする）"""
        user = await self.get(user_id)
        now = utc_now()
        user.deleted_at = now
        user.is_active = False
        user.updated_at = now
        async with session_errors(self.session, "user_store.delete"):
            await self.session.commit()
        logger.info(f"User soft-deleted: {user.id}")

    async def _find_one(self, condition) -> User:
        async with session_errors(self.session, "user_store.find"):
            result = await self.session.execute(
                select(User).where(condition, User.deleted_at.is_(None))
            )
            user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def _exists(self, condition) -> bool:
        async with session_errors(self.session, "user_store.exists"):
            result = await self.session.execute(
                select(func.count()).select_from(User).where(condition, User.deleted_at.is_(None))
            )
            return result.scalar_one() > 0
