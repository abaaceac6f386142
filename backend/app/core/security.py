"""
PEACE - Security Module
パスワードハッシュと、種別付き JWT（access / refresh）の発行・検証
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import InvalidTokenError

logger = logging.getLogger(__name__)

# パスワードハッシュ設定
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """パスワードを検証（ハッシュ未設定のユーザーは常に False）"""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # 破損したハッシュはパスワード不一致として扱う
        logger.warning("Stored password hash could not be parsed")
        return False


def get_password_hash(password: str) -> str:
    """パスワードをハッシュ化"""
    return pwd_context.hash(password)


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    type: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    署名付きトークンの発行と検証

    access と refresh は type クレームで区別され、
    取り違えた種別での検証は InvalidTokenError になる。
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(hours=24),
        refresh_ttl: timedelta = timedelta(hours=168),
        leeway: timedelta = timedelta(seconds=60),
    ):
        if not secret:
            raise ValueError("token secret cannot be empty")
        self.secret = secret
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.leeway = leeway

    def mint_access(self, user_id: str, email: str) -> str:
        return self._mint(user_id, email, TOKEN_TYPE_ACCESS, self.access_ttl)

    def mint_refresh(self, user_id: str, email: str) -> str:
        return self._mint(user_id, email, TOKEN_TYPE_REFRESH, self.refresh_ttl)

    def validate_access(self, token: str) -> TokenClaims:
        return self._validate(token, TOKEN_TYPE_ACCESS)

    def validate_refresh(self, token: str) -> TokenClaims:
        return self._validate(token, TOKEN_TYPE_REFRESH)

    def _mint(self, user_id: str, email: str, token_type: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = {
            "sub": str(user_id),
            "user_id": str(user_id),
            "email": email,
            "type": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
        }
        return jwt.encode(to_encode, self.secret, algorithm=self.algorithm)

    def _validate(self, token: str, expected_type: str) -> TokenClaims:
        if not token:
            raise InvalidTokenError("token is required")
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"leeway": int(self.leeway.total_seconds())},
            )
        except ExpiredSignatureError:
            raise InvalidTokenError("token has expired")
        except JWTError:
            raise InvalidTokenError("invalid token")

        if payload.get("type") != expected_type:
            raise InvalidTokenError("invalid token type")

        user_id = payload.get("user_id")
        email = payload.get("email")
        if not user_id or not isinstance(email, str):
            raise InvalidTokenError("invalid token claims")

        try:
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError("invalid token claims")

        return TokenClaims(
            user_id=str(user_id),
            email=email,
            type=expected_type,
            issued_at=issued_at,
            expires_at=expires_at,
        )


def build_token_service() -> TokenService:
    """設定値から TokenService を生成"""
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        access_ttl=settings.jwt_expiration,
        refresh_ttl=settings.jwt_refresh_expiration,
        leeway=settings.jwt_leeway,
    )


token_service = build_token_service()
