"""
Shared fixtures: an in-memory SQLite database, a store bound to it, and
an httpx client wired to the FastAPI app.
"""

import os

# Must be set before any application module reads the settings
os.environ.update(
    {
        "ENVIRONMENT": "test",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "JWT_SECRET": "test-jwt-secret",
        "BCRYPT_ROUNDS": "4",
        "CLIENT_URL": "http://client.test",
        "ADMIN_EMAIL": "admin@nextstay.io",
        "GOOGLE_CLIENT_ID": "google-client-id",
        "GOOGLE_CLIENT_SECRET": "google-client-secret",
        "GOOGLE_CALLBACK_URL": "http://test/api/auth/google/callback",
    }
)
for _var in ("EMAIL_SERVER_HOST", "EMAIL_SERVER_PORT", "EMAIL_SERVER_USER", "EMAIL_SERVER_PASSWORD"):
    os.environ.pop(_var, None)

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from auth.routes import get_google_connector
from connectors.base import ProviderProfile
from connectors.google import GoogleConnector
from database.models import Base
from database.session import get_db_session
from database.users import UserStore
from main import create_app


class FakeGoogleConnector(GoogleConnector):
    """GoogleConnector whose code exchange returns a canned profile."""

    def __init__(self):
        super().__init__(
            client_id="google-client-id",
            client_secret="google-client-secret",
            callback_url="http://test/api/auth/google/callback",
        )
        self.profile: ProviderProfile | None = None
        self.error: Exception | None = None
        self.codes: list[str] = []

    async def fetch_profile(self, code: str) -> ProviderProfile:
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        assert self.profile is not None
        return self.profile


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db):
    return UserStore(db)


@pytest.fixture
def google():
    return FakeGoogleConnector()


@pytest.fixture
def app(session_factory, google):
    app = create_app()

    async def _session_override():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _session_override
    app.dependency_overrides[get_google_connector] = lambda: google
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def register_user(client, name="Jane Tenant", email="jane@nextstay.io", password="secret123", **extra):
    """Helper: POST /register and return the parsed body."""
    resp = await client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password, **extra},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
