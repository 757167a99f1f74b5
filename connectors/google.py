"""
GoogleConnector — OAuth2 web flow for "Sign in with Google".

Only identity scopes are requested; the access token is used once to
read the userinfo endpoint and is not stored.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from config.settings import Settings, config
from connectors.base import BaseIdentityProvider, ProviderProfile

logger = logging.getLogger(__name__)

# Google OAuth2 endpoints
_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
_GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"


class GoogleConnector(BaseIdentityProvider):
    """OAuth2 sign-in with Google."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        callback_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.callback_url = callback_url
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings = config) -> "GoogleConnector":
        return cls(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            callback_url=settings.google_callback_url,
        )

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def scopes(self) -> List[str]:
        return ["openid", "email", "profile"]

    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_auth_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
            "prompt": "select_account",
        }
        return f"{_GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def fetch_profile(self, code: str) -> ProviderProfile:
        """Exchange auth code for an access token, then read userinfo."""
        async with httpx.AsyncClient(transport=self._transport, timeout=15.0) as client:
            # 1. Exchange code for tokens
            token_resp = await client.post(
                _GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.callback_url,
                    "grant_type": "authorization_code",
                },
            )
            token_resp.raise_for_status()
            token_data = token_resp.json()
            access_token = token_data.get("access_token")
            if not access_token:
                raise ValueError("Google token response has no access_token")

            # 2. Fetch the signed-in account
            headers = {"Authorization": f"Bearer {access_token}"}
            user_resp = await client.get(_GOOGLE_USERINFO_URL, headers=headers)
            user_resp.raise_for_status()
            user_info = user_resp.json()

        if not user_info.get("id"):
            raise ValueError("Google userinfo response has no id")

        email = user_info.get("email")
        picture = user_info.get("picture")
        profile = ProviderProfile(
            id=str(user_info["id"]),
            display_name=user_info.get("name") or (email or "").split("@")[0],
            emails=[email] if email else [],
            photos=[picture] if picture else [],
        )
        logger.debug("Google profile fetched: id=%s email=%s", profile.id, email)
        return profile
