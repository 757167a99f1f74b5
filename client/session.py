"""
AuthClient — programmatic client for the auth API.

Every call returns an explicit ``AuthSession``; the token is persisted
through the injected ``TokenStorage`` rather than any global state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from client.storage import MemoryTokenStorage, TokenStorage

logger = logging.getLogger(__name__)


class AuthClientError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


@dataclass(frozen=True)
class AuthSession:
    user: Optional[Dict[str, Any]] = None
    token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None


ANONYMOUS = AuthSession()


class AuthClient:
    def __init__(
        self,
        base_url: str,
        storage: Optional[TokenStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage if storage is not None else MemoryTokenStorage()
        self._http = httpx.AsyncClient(base_url=self.base_url, transport=transport, timeout=15.0)

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── HTTP helpers ────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, token: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        resp = await self._http.request(method, f"/api/auth{path}", headers=headers, **kwargs)
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            raise AuthClientError(resp.status_code, message or resp.reason_phrase)
        return body

    async def _fetch_profile(self, token: str) -> Dict[str, Any]:
        body = await self._request("GET", "/me", token=token)
        return body["data"]["user"]

    def _authenticated(self, body: Dict[str, Any]) -> AuthSession:
        token = body["data"]["token"]
        self.storage.save(token)
        return AuthSession(user=body["data"]["user"], token=token)

    # ── Session operations ──────────────────────────────────────────────

    async def restore(self) -> AuthSession:
        """Resume from a stored token; a stale token is discarded."""
        token = self.storage.load()
        if not token:
            return ANONYMOUS
        try:
            user = await self._fetch_profile(token)
        except (AuthClientError, httpx.HTTPError) as exc:
            logger.info("Stored session rejected: %s", exc)
            self.storage.clear()
            return ANONYMOUS
        return AuthSession(user=user, token=token)

    async def login(self, email: str, password: str) -> AuthSession:
        body = await self._request("POST", "/login", json={"email": email, "password": password})
        return self._authenticated(body)

    async def register(self, name: str, email: str, password: str, role: str = "tenant") -> AuthSession:
        body = await self._request(
            "POST",
            "/register",
            json={"name": name, "email": email, "password": password, "role": role},
        )
        return self._authenticated(body)

    def google_login_url(self) -> str:
        """Where to send the browser to start Google sign-in."""
        return f"{self.base_url}/api/auth/google"

    async def handle_google_callback(self, token: str) -> AuthSession:
        """Adopt the token delivered on the client callback URL."""
        if not token:
            raise AuthClientError(400, "No token provided")
        self.storage.save(token)
        try:
            user = await self._fetch_profile(token)
        except AuthClientError:
            self.storage.clear()
            raise
        return AuthSession(user=user, token=token)

    async def verify_email(self, token: str) -> Dict[str, Any]:
        body = await self._request("POST", "/verify-email", json={"token": token})
        return body["data"]["user"]

    async def resend_verification(self, email: str) -> None:
        await self._request("POST", "/resend-verification", json={"email": email})

    def logout(self) -> AuthSession:
        self.storage.clear()
        return ANONYMOUS
