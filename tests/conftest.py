"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database (aiosqlite) and a frozen
clock. Tokens are signed with a throwaway RSA key generated once per run.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ["HQ_DATABASE_URL"] = TEST_DATABASE_URL
os.environ["HQ_LOG_FORMAT"] = "console"

from habitquest.auth.dependencies import CurrentUser, get_current_user  # noqa: E402
from habitquest.auth.jwt import reset_keys  # noqa: E402
from habitquest.config import get_settings  # noqa: E402
from habitquest.database import close_db, create_tables, get_session_factory, init_db  # noqa: E402
from habitquest.dependencies import get_clock  # noqa: E402
from habitquest.habits.calendar import DayCalendar, FrozenClock  # noqa: E402
from habitquest.main import create_app  # noqa: E402

# Monday, ISO week 2026-W10.
START = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def _generate_test_keys() -> str:
    """Write an RSA key pair to a temp dir and point the settings at it."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    tmpdir = Path(tempfile.mkdtemp(prefix="hq_test_keys_"))
    private_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    public_path = tmpdir / "jwt_public.pem"
    public_path.write_bytes(key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ))
    os.environ["HQ_JWT_PUBLIC_KEY_PATH"] = str(public_path)
    get_settings.cache_clear()
    reset_keys()
    return private_pem


_PRIVATE_KEY = _generate_test_keys()


def make_token(user_id: int, name: str | None = None, **overrides: object) -> str:
    """Sign an access token the way the auth service would."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, object] = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(hours=1),
        "iss": settings.jwt_issuer,
        "type": "access",
    }
    if name is not None:
        payload["name"] = name
    payload.update(overrides)
    return jwt.encode(payload, _PRIVATE_KEY, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: int, name: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id, name)}"}


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture
def calendar() -> DayCalendar:
    return DayCalendar("UTC")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """A session on a fresh, empty schema."""
    await init_db(TEST_DATABASE_URL)
    await create_tables()
    async with get_session_factory()() as session:
        yield session
    await close_db()


@pytest_asyncio.fixture
async def app(clock: FrozenClock):
    """Application with a fresh database and the frozen clock injected."""
    application = create_app()
    await init_db(TEST_DATABASE_URL)
    await create_tables()
    application.dependency_overrides[get_clock] = lambda: clock
    yield application
    application.dependency_overrides.clear()
    await close_db()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated async HTTP client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(app, client: AsyncClient) -> AsyncClient:
    """Client acting as user 1 ('alice') via a dependency override."""
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(id=1, display_name="alice")
    return client


@pytest.fixture
def headers():
    """Factory for bearer headers signed with the test key."""
    return auth_headers


@pytest.fixture
def token():
    """Factory for raw access tokens; keyword overrides replace claims."""
    return make_token
