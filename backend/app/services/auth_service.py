"""
PEACE - Auth Service
登録・ログイン・トークン更新・外部プロバイダログイン
"""
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional, Protocol

from app.core.errors import (
    ConflictError,
    InternalError,
    InvalidOAuthCodeError,
    InvalidTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from app.core.logger import trace_execution
from app.core.security import TokenService, get_password_hash, verify_password
from app.models.user import AUTH_PROVIDER_LOCAL, User
from app.services.google_oauth import ExternalProfile
from app.services.user_store import UserStore
from app.services.validators import (
    MAX_USERNAME_LENGTH,
    MIN_USERNAME_LENGTH,
    is_valid_name,
    normalize_email,
    validate_name,
    validate_password,
    validate_username,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "invalid email or password"
MAX_USERNAME_ATTEMPTS = 1000
FALLBACK_NAME = "User"

_USERNAME_STRIP_RE = re.compile(r"[^A-Za-z0-9_]")


class OAuthProvider(Protocol):
    name: str

    def authorization_url(self, state: Optional[str] = None) -> str:
        ...

    async def exchange(self, code: str) -> ExternalProfile:
        ...


@dataclass
class AuthResult:
    user: User
    access_token: str
    refresh_token: str


@dataclass
class TokenPairResult:
    access_token: str
    refresh_token: str


def clean_username(email: str) -> str:
    """
    メールアドレスのローカル部からユーザー名の候補を作る

    - [A-Za-z0-9_] 以外を除去
    - 英字で始まらない場合は "user_" を前置
    - 3文字未満なら "user_" を前置
    - 50文字に切り詰め
    """
    local_part = email.split("@", 1)[0]
    cleaned = _USERNAME_STRIP_RE.sub("", local_part)
    if not cleaned or not cleaned[0].isalpha():
        cleaned = f"user_{cleaned}"
    if len(cleaned) < MIN_USERNAME_LENGTH:
        cleaned = f"user_{cleaned}"
    return cleaned[:MAX_USERNAME_LENGTH]


async def generate_unique_username(
    email: str,
    exists: Callable[[str], Awaitable[bool]],
) -> str:
    """衝突した場合は _1, _2, ... を付けて最大1000回まで試す"""
    base = clean_username(email)
    if not await exists(base):
        return base

    for n in range(1, MAX_USERNAME_ATTEMPTS + 1):
        suffix = f"_{n}"
        candidate = base[: MAX_USERNAME_LENGTH - len(suffix)] + suffix
        if not await exists(candidate):
            return candidate

    raise InternalError("could not generate a unique username")


class AuthService:
    """認証オーケストレーター"""

    def __init__(
        self,
        user_store: UserStore,
        token_service: TokenService,
        providers: Optional[Dict[str, OAuthProvider]] = None,
    ):
        self.user_store = user_store
        self.token_service = token_service
        self.providers = providers or {}

    @trace_execution("AuthService", "register")
    async def register(
        self,
        email: str,
        username: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        email = normalize_email(email)
        username = validate_username(username)
        validate_password(password)
        first_name = validate_name(first_name, "first name")
        last_name = validate_name(last_name, "last name")

        if await self.user_store.email_exists(email):
            raise ConflictError("email already registered")
        if await self.user_store.username_exists(username):
            raise ConflictError("username already taken")

        user = User(
            email=email,
            username=username,
            first_name=first_name,
            last_name=last_name,
            password_hash=get_password_hash(password),
            is_active=True,
            email_verified=False,
            auth_provider=AUTH_PROVIDER_LOCAL,
        )
        user = await self.user_store.create(user)
        logger.info(f"User registered: {user.id}")
        return user

    @trace_execution("AuthService", "login")
    async def login(self, email: str, password: str) -> AuthResult:
        # 失敗理由に関わらず同じメッセージを返す
        if not email or not password:
            raise UnauthorizedError(INVALID_CREDENTIALS)

        user = await self.user_store.get_by_email(email)
        if user is None or not user.can_login():
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        return self._issue(user)

    @trace_execution("AuthService", "refresh")
    async def refresh(
        self,
        refresh_token: str,
        access_token: Optional[str] = None,
    ) -> TokenPairResult:
        """
        refresh トークンだけを検証し、新しい access / refresh を発行する

        access_token は受け取るが判定には使わない。
        古い refresh トークンは失効させない（有効期限まで有効）。
        """
        try:
            claims = self.token_service.validate_refresh(refresh_token)
        except InvalidTokenError as e:
            raise UnauthorizedError("invalid refresh token") from e

        return TokenPairResult(
            access_token=self.token_service.mint_access(claims.user_id, claims.email),
            refresh_token=self.token_service.mint_refresh(claims.user_id, claims.email),
        )

    def get_provider(self, provider_name: str) -> OAuthProvider:
        provider = self.providers.get((provider_name or "").lower())
        if provider is None:
            raise NotFoundError(f"unsupported auth provider: {provider_name}")
        return provider

    def authorization_url(self, provider_name: str, state: Optional[str] = None) -> str:
        return self.get_provider(provider_name).authorization_url(state)

    @trace_execution("AuthService", "login_with_provider")
    async def login_with_provider(self, provider_name: str, code: str) -> AuthResult:
        provider = self.get_provider(provider_name)
        if not code or not code.strip():
            raise ValidationError("authorization code is required")

        try:
            profile = await provider.exchange(code.strip())
        except InvalidOAuthCodeError as e:
            raise UnauthorizedError("invalid authorization code") from e

        email = normalize_email(profile.email)
        user = await self.user_store.get_by_email(email)

        if user is None:
            user = await self._create_provider_user(provider.name, email, profile)
        else:
            if not user.can_login():
                raise UnauthorizedError("user account is inactive")
            if not user.provider_id:
                # 既存のローカルアカウントにプロバイダを紐づける
                user.provider_id = profile.external_id
                if not user.avatar_url and profile.picture:
                    user.avatar_url = profile.picture
                user.email_verified = True
                user = await self.user_store.update(user)

        return self._issue(user)

    async def _create_provider_user(
        self,
        provider_name: str,
        email: str,
        profile: ExternalProfile,
    ) -> User:
        username = await generate_unique_username(email, self.user_store.username_exists)
        first_name = profile.first_name.strip() if is_valid_name(profile.first_name) else FALLBACK_NAME
        last_name = profile.last_name.strip() if is_valid_name(profile.last_name) else FALLBACK_NAME

        user = User(
            email=email,
            username=username,
            first_name=first_name,
            last_name=last_name,
            password_hash=None,
            is_active=True,
            email_verified=True,
            auth_provider=provider_name,
            provider_id=profile.external_id,
            avatar_url=profile.picture,
        )
        user = await self.user_store.create(user)
        logger.info(f"User created from {provider_name} login: {user.id}")
        return user

    def _issue(self, user: User) -> AuthResult:
        user_id = str(user.id)
        return AuthResult(
            user=user,
            access_token=self.token_service.mint_access(user_id, user.email),
            refresh_token=self.token_service.mint_refresh(user_id, user.email),
        )
