"""
PEACE - User Schemas
ユーザー・認証関連のスキーマ

入力値の詳細な検証（メール形式やパスワード強度）はサービス層で行い、
ここでは型だけを受け付ける。
"""
import uuid
from typing import Optional

from pydantic import BaseModel

from app.schemas.common import UTCDateTime


class RegisterRequest(BaseModel):
    """ユーザー登録リクエスト"""

    email: str
    username: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(BaseModel):
    """ログインリクエスト"""

    email: str
    password: str


class RefreshRequest(BaseModel):
    """トークン更新リクエスト（access_token は判定に使わない）"""

    access_token: Optional[str] = None
    refresh_token: str


class ProviderLoginRequest(BaseModel):
    """外部プロバイダの認可コード"""

    code: str


class UpdateProfileRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    new_password: str = ""


class UserSummary(BaseModel):
    """ログイン応答に含めるユーザー情報"""

    id: uuid.UUID
    email: str
    username: str
    full_name: str

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    """ユーザーレスポンススキーマ"""

    id: uuid.UUID
    email: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str
    avatar_url: Optional[str] = None
    auth_provider: str
    email_verified: bool
    is_active: bool
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    """ログイン・トークン更新の応答"""

    user: UserSummary
    access_token: str
    refresh_token: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str


class AuthUrlResponse(BaseModel):
    url: str
