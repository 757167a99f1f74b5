"""
Tests for AuthClient against the real app (ASGI transport).
"""

import os
import stat
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio

from client.session import ANONYMOUS, AuthClient, AuthClientError
from client.storage import FileTokenStorage, MemoryTokenStorage


@pytest_asyncio.fixture
async def auth_client(app):
    storage = MemoryTokenStorage()
    client = AuthClient("http://test", storage=storage, transport=httpx.ASGITransport(app=app))
    yield client
    await client.aclose()


class TestAuthClient:
    @pytest.mark.asyncio
    async def test_register_persists_token(self, auth_client):
        session = await auth_client.register("Jane", "jane@nextstay.io", "secret123", role="manager")

        assert session.is_authenticated
        assert session.user["role"] == "manager"
        assert auth_client.storage.load() == session.token

    @pytest.mark.asyncio
    async def test_login_and_restore(self, auth_client):
        await auth_client.register("Jane", "jane@nextstay.io", "secret123")
        auth_client.logout()
        assert auth_client.storage.load() is None

        session = await auth_client.login("jane@nextstay.io", "secret123")
        restored = await auth_client.restore()
        assert restored == session

    @pytest.mark.asyncio
    async def test_login_failure_raises(self, auth_client):
        with pytest.raises(AuthClientError) as exc_info:
            await auth_client.login("ghost@nextstay.io", "secret123")
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Invalid credentials"
        assert auth_client.storage.load() is None

    @pytest.mark.asyncio
    async def test_restore_without_token(self, auth_client):
        assert await auth_client.restore() is ANONYMOUS

    @pytest.mark.asyncio
    async def test_restore_discards_stale_token(self, auth_client):
        auth_client.storage.save("stale.token.value")
        session = await auth_client.restore()
        assert session == ANONYMOUS
        assert auth_client.storage.load() is None

    @pytest.mark.asyncio
    async def test_handle_google_callback(self, auth_client):
        registered = await auth_client.register("Jane", "jane@nextstay.io", "secret123")
        auth_client.logout()

        session = await auth_client.handle_google_callback(registered.token)
        assert session.user["email"] == "jane@nextstay.io"
        assert auth_client.storage.load() == registered.token

        with pytest.raises(AuthClientError):
            await auth_client.handle_google_callback("")
        with pytest.raises(AuthClientError):
            await auth_client.handle_google_callback("bad.token.here")
        assert auth_client.storage.load() is None

    def test_google_login_url(self):
        client = AuthClient("http://api.nextstay.io/")
        assert client.google_login_url() == "http://api.nextstay.io/api/auth/google"


class TestFileTokenStorage:
    def test_round_trip(self, tmp_path):
        storage = FileTokenStorage(tmp_path / "nested" / "token.json")
        assert storage.load() is None

        storage.save("abc")
        assert storage.load() == "abc"
        assert FileTokenStorage(tmp_path / "nested" / "token.json").load() == "abc"

        storage.clear()
        assert storage.load() is None
        storage.clear()

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("{not json")
        assert FileTokenStorage(path).load() is None

    def test_token_file_is_owner_only(self, tmp_path):
        path = tmp_path / "token.json"
        FileTokenStorage(path).save("abc")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_existing_readable_file_is_tightened(self, tmp_path):
        path = tmp_path / "token.json"
        path.write_text("{}")
        path.chmod(0o644)

        FileTokenStorage(path).save("abc")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert FileTokenStorage(path).load() == "abc"

    def test_file_created_with_owner_only_mode(self, tmp_path):
        path = tmp_path / "token.json"
        with patch("client.storage.os.open", wraps=os.open) as os_open:
            FileTokenStorage(path).save("abc")
        assert os_open.call_args.args[2] == 0o600
