"""
PEACE - User Endpoints
ログイン中ユーザーのプロフィール・パスワード・アカウント管理API
"""
from fastapi import APIRouter, Depends

from app.api.deps import get_current_user, get_current_user_id, get_user_service
from app.api.responses import success
from app.models.user import User
from app.schemas.user import UpdatePasswordRequest, UpdateProfileRequest, UserResponse
from app.services.user_service import UserService

router = APIRouter()


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """現在のユーザー情報を取得"""
    return success("User retrieved successfully", UserResponse.model_validate(current_user))


@router.put("/profile")
async def update_profile(
    body: UpdateProfileRequest,
    user_id: str = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    user = await user_service.update_profile(user_id, body.first_name, body.last_name)
    return success("Profile updated successfully", UserResponse.model_validate(user))


@router.put("/password")
async def update_password(
    body: UpdatePasswordRequest,
    user_id: str = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    await user_service.update_password(user_id, body.new_password)
    return success("Password updated successfully")


@router.post("/deactivate")
async def deactivate(
    user_id: str = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    await user_service.deactivate(user_id)
    return success("User deactivated successfully")


@router.delete("/account")
async def delete_account(
    user_id: str = Depends(get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    await user_service.delete_account(user_id)
    return success("User account deleted successfully")
