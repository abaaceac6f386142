"""
PEACE - User Service
プロフィール更新・パスワード変更・無効化・アカウント削除
"""
import logging
import uuid
from typing import Optional, Union

from app.core.errors import ValidationError
from app.core.logger import trace_execution
from app.core.security import get_password_hash
from app.models.user import User
from app.services.user_store import UserStore
from app.services.validators import validate_name, validate_password

logger = logging.getLogger(__name__)

UserID = Union[str, uuid.UUID]


class UserService:
    def __init__(self, user_store: UserStore):
        self.user_store = user_store

    async def get_profile(self, user_id: UserID) -> User:
        return await self.user_store.get(user_id)

    @trace_execution("UserService", "update_profile")
    async def update_profile(
        self,
        user_id: UserID,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        first_name = validate_name(first_name, "first name")
        last_name = validate_name(last_name, "last name")

        user = await self.user_store.get(user_id)
        user.first_name = first_name
        user.last_name = last_name
        return await self.user_store.update(user)

    @trace_execution("UserService", "update_password")
    async def update_password(self, user_id: UserID, new_password: str) -> User:
        if not new_password:
            raise ValidationError("new password is required")
        validate_password(new_password)

        user = await self.user_store.get(user_id)
        user.password_hash = get_password_hash(new_password)
        return await self.user_store.update(user)

    @trace_execution("UserService", "deactivate")
    async def deactivate(self, user_id: UserID) -> User:
        user = await self.user_store.get(user_id)
        if not user.is_active:
            raise ValidationError("user is already deactivated")
        user.is_active = False
        user = await self.user_store.update(user)
        logger.info(f"User deactivated: {user.id}")
        return user

    @trace_execution("UserService", "delete_account")
    async def delete_account(self, user_id: UserID) -> None:
        await self.user_store.delete(user_id)
