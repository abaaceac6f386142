"""
TokenService / パスワードハッシュ 単体テスト

access と refresh の取り違え、署名・有効期限の検証を確認する。
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from jose import jwt

from app.core.errors import InvalidTokenError
from app.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    TokenService,
    get_password_hash,
    verify_password,
)
from tests.conftest import TEST_SECRET

USER_ID = "8f5b7a1e-0c3d-4a57-9b1e-2f6c1d9e7a01"


class TestTokenTypes:
    """トークン種別の検証"""

    def test_access_round_trip(self, token_service):
        token = token_service.mint_access(USER_ID, "a@x.io")
        claims = token_service.validate_access(token)
        assert claims.user_id == USER_ID
        assert claims.email == "a@x.io"
        assert claims.type == TOKEN_TYPE_ACCESS
        assert claims.expires_at - claims.issued_at == timedelta(hours=24)

    def test_refresh_lifetime(self, token_service):
        claims = token_service.validate_refresh(token_service.mint_refresh(USER_ID, "a@x.io"))
        assert claims.type == TOKEN_TYPE_REFRESH
        assert claims.expires_at - claims.issued_at == timedelta(hours=168)

    def test_refresh_token_rejected_as_access(self, token_service):
        refresh = token_service.mint_refresh(USER_ID, "a@x.io")
        with pytest.raises(InvalidTokenError):
            token_service.validate_access(refresh)

    def test_access_token_rejected_as_refresh(self, token_service):
        access = token_service.mint_access(USER_ID, "a@x.io")
        with pytest.raises(InvalidTokenError):
            token_service.validate_refresh(access)


class TestTokenValidation:
    """署名・有効期限・クレームの検証"""

    def test_wrong_secret(self, token_service):
        other = TokenService(secret="another-secret")
        token = other.mint_access(USER_ID, "a@x.io")
        with pytest.raises(InvalidTokenError):
            token_service.validate_access(token)

    def test_expired_beyond_leeway(self):
        service = TokenService(secret=TEST_SECRET, access_ttl=timedelta(seconds=-120))
        token = service.mint_access(USER_ID, "a@x.io")
        with pytest.raises(InvalidTokenError, match="expired"):
            service.validate_access(token)

    def test_expired_within_leeway_is_accepted(self):
        service = TokenService(secret=TEST_SECRET, access_ttl=timedelta(seconds=-10))
        token = service.mint_access(USER_ID, "a@x.io")
        assert service.validate_access(token).user_id == USER_ID

    def test_garbage_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.validate_access("not-a-jwt")

    def test_empty_token(self, token_service):
        with pytest.raises(InvalidTokenError):
            token_service.validate_access("")

    def test_missing_user_id_claim(self, token_service):
        token = jwt.encode(
            {"email": "a@x.io", "type": "access", "iat": 1, "exp": 32503680000},
            TEST_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            token_service.validate_access(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenService(secret="")


class TestPasswordHash:
    def test_hash_and_verify(self):
        hashed = get_password_hash("Pass1word")
        assert hashed != "Pass1word"
        assert verify_password("Pass1word", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_hash_never_verifies(self):
        assert not verify_password("Pass1word", None)
        assert not verify_password("Pass1word", "")
