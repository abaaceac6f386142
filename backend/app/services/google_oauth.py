"""
PEACE - Google OAuth Exchange
認可URLの生成と、認可コード → ユーザープロフィールの交換
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.errors import (
    InvalidOAuthCodeError,
    MalformedUpstreamResponseError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPES = "openid email profile"


@dataclass
class ExternalProfile:
    """外部プロバイダから取得したユーザー情報"""

    external_id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    picture: Optional[str] = None
    email_verified: bool = False


class GoogleOAuthProvider:
    """
    Google OAuth2（authorization code フロー）

    - authorization_url(): 同意画面へのURL
    - exchange(code): トークン交換 → userinfo 取得
    """

    name = "google"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._transport = transport
        self._timeout = timeout

    def authorization_url(self, state: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": GOOGLE_SCOPES,
            "response_type": "code",
            "access_type": "offline",
        }
        if state:
            params["state"] = state
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange(self, code: str) -> ExternalProfile:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            access_token = await self._exchange_code(client, code)
            return await self._fetch_profile(client, access_token)

    async def _exchange_code(self, client: httpx.AsyncClient, code: str) -> str:
        try:
            response = await client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Google token request failed: {e}")
            raise UpstreamError("failed to reach identity provider") from e

        if response.is_error:
            body = self._safe_json(response)
            if body.get("error") == "invalid_grant":
                raise InvalidOAuthCodeError("invalid authorization code")
            logger.warning(f"Google token endpoint returned {response.status_code}")
            raise UpstreamError(f"identity provider returned status {response.status_code}")

        payload = self._parse_json(response)
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise MalformedUpstreamResponseError("token response missing access_token")
        return access_token

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> ExternalProfile:
        try:
            response = await client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Google userinfo request failed: {e}")
            raise UpstreamError("failed to reach identity provider") from e

        if response.is_error:
            logger.warning(f"Google userinfo endpoint returned {response.status_code}")
            raise UpstreamError(f"identity provider returned status {response.status_code}")

        payload = self._parse_json(response)
        external_id = payload.get("id")
        email = payload.get("email")
        if not external_id or not isinstance(email, str) or not email:
            raise MalformedUpstreamResponseError("userinfo response missing id or email")

        return ExternalProfile(
            external_id=str(external_id),
            email=email,
            first_name=payload.get("given_name") or "",
            last_name=payload.get("family_name") or "",
            picture=payload.get("picture") or None,
            email_verified=bool(payload.get("email_verified", payload.get("verified_email", False))),
        )

    @staticmethod
    def _parse_json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedUpstreamResponseError("identity provider returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise MalformedUpstreamResponseError("identity provider returned unexpected payload")
        return payload

    @staticmethod
    def _safe_json(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}


def build_google_provider(transport: Optional[httpx.AsyncBaseTransport] = None) -> GoogleOAuthProvider:
    """設定値から Google プロバイダを生成"""
    return GoogleOAuthProvider(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        transport=transport,
    )
