"""
PEACE - Authentication Endpoints
ユーザー登録・ログイン・トークン更新・外部プロバイダ認証API
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_auth_service
from app.api.responses import success
from app.services.auth_service import AuthResult, AuthService
from app.schemas.user import (
    AuthUrlResponse,
    LoginRequest,
    LoginResponse,
    ProviderLoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserResponse,
    UserSummary,
)

router = APIRouter()


def _login_payload(result: AuthResult) -> LoginResponse:
    return LoginResponse(
        user=UserSummary.model_validate(result.user),
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """新規ユーザー登録（トークンは発行しない）"""
    user = await auth_service.register(
        email=body.email,
        username=body.username,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return success(
        "User registered successfully",
        UserResponse.model_validate(user),
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """ユーザーログイン"""
    result = await auth_service.login(body.email, body.password)
    return success("Login successful", _login_payload(result))


@router.post("/refresh")
async def refresh(
    body: RefreshRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """refresh トークンから新しいトークンペアを発行"""
    result = await auth_service.refresh(body.refresh_token, body.access_token)
    return success(
        "Token refreshed successfully",
        TokenPair(access_token=result.access_token, refresh_token=result.refresh_token),
    )


@router.get("/{provider}/url")
async def provider_url(
    provider: str,
    state: Optional[str] = Query(default=None),
    auth_service: AuthService = Depends(get_auth_service),
):
    """外部プロバイダの認可URLを取得"""
    url = auth_service.authorization_url(provider, state)
    return success("Auth URL generated successfully", AuthUrlResponse(url=url))


@router.post("/{provider}/login")
async def provider_login(
    provider: str,
    body: ProviderLoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """認可コードでログイン（初回はアカウントを作成）"""
    result = await auth_service.login_with_provider(provider, body.code)
    return success(f"{provider.capitalize()} login successful", _login_payload(result))
