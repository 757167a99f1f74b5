"""
Tests for the access dependencies outside the /me route: optional mode,
request-state attachment and the role/admin gates in isolation.
"""

from types import SimpleNamespace

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from auth.dependencies import get_current_user, get_optional_user, require_admin, require_roles
from auth.errors import Forbidden, Unauthorized
from auth.jwt import create_token

from conftest import register_user


def _request():
    return SimpleNamespace(state=SimpleNamespace())


def _creds(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestStatusRoute:
    @pytest.mark.asyncio
    async def test_anonymous(self, client):
        resp = await client.get("/api/auth/status")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"authenticated": False, "user": None}

    @pytest.mark.asyncio
    async def test_bad_token_does_not_block(self, client):
        resp = await client.get("/api/auth/status", headers={"Authorization": "Bearer junk"})
        assert resp.status_code == 200
        assert resp.json()["data"]["authenticated"] is False

    @pytest.mark.asyncio
    async def test_signed_in(self, client):
        token = (await register_user(client))["data"]["token"]
        resp = await client.get("/api/auth/status", headers={"Authorization": f"Bearer {token}"})
        data = resp.json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["email"] == "jane@nextstay.io"


class TestDependencies:
    @pytest.mark.asyncio
    async def test_current_user_attached_to_request(self, store):
        user = await store.create(name="Jane", email="jane@nextstay.io", password="secret123")
        request = _request()

        resolved = await get_current_user(request, _creds(create_token(str(user.id), user.email)), store)

        assert resolved.id == user.id
        assert request.state.user is resolved

    @pytest.mark.asyncio
    async def test_current_user_without_credentials(self, store):
        with pytest.raises(Unauthorized, match="No token provided"):
            await get_current_user(_request(), None, store)

    @pytest.mark.asyncio
    async def test_optional_user(self, store):
        user = await store.create(name="Jane", email="jane@nextstay.io", password="secret123")
        request = _request()

        assert await get_optional_user(_request(), None, store) is None
        assert await get_optional_user(_request(), _creds("garbage"), store) is None
        expired = create_token(str(user.id), user.email, expires_in=-5)
        assert await get_optional_user(_request(), _creds(expired), store) is None

        resolved = await get_optional_user(request, _creds(create_token(str(user.id), user.email)), store)
        assert resolved.id == user.id
        assert request.state.user is resolved

    @pytest.mark.asyncio
    async def test_require_roles(self):
        check = require_roles("manager")
        manager = SimpleNamespace(role="manager", email="m@nextstay.io")
        tenant = SimpleNamespace(role="tenant", email="t@nextstay.io")

        assert await check(manager) is manager
        with pytest.raises(Forbidden):
            await check(tenant)

    @pytest.mark.asyncio
    async def test_require_admin_without_configured_admin(self, monkeypatch):
        import auth.dependencies as deps

        monkeypatch.setattr(deps.config, "admin_email", "")
        with pytest.raises(Forbidden):
            await require_admin(SimpleNamespace(role="manager", email=""))
