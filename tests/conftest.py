"""
Pytest fixtures for Civic Trust Core tests.

Tests run against a temp-file SQLite database so the app, the fixtures and
concurrent sessions all see the same data.
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator, Callable

# Point settings at the test database before anything imports civictrust
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-32chars"
os.environ["ENVIRONMENT"] = "test"
os.environ["SMTP_HOST"] = ""

from civictrust.config import get_settings  # noqa: E402

get_settings.cache_clear()

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from civictrust.database import async_session_maker, engine  # noqa: E402
from civictrust.kernel.identity.jwt import JWTManager  # noqa: E402
from civictrust.kernel.models import Base, User  # noqa: E402
from civictrust.kernel.permissions import Capability, PermissionService  # noqa: E402


@pytest_asyncio.fixture
async def db_schema():
    """Fresh tables for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest_asyncio.fixture
async def session_factory(db_schema) -> async_sessionmaker:
    """Session factory for tests that need several independent sessions."""
    return async_session_maker


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


async def _create_user(
    session: AsyncSession,
    email: str,
    display_name: str,
    *capabilities: Capability,
) -> User:
    user = User(id=uuid.uuid4(), email=email, display_name=display_name)
    session.add(user)
    await session.flush()
    service = PermissionService(session)
    for capability in capabilities:
        await service.grant(user.id, capability)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def citizen(db_session: AsyncSession) -> User:
    """A user with no grants."""
    return await _create_user(db_session, "citizen@example.com", "Test Citizen")


@pytest_asyncio.fixture
async def other_citizen(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "neighbour@example.com", "Other Citizen")


@pytest_asyncio.fixture
async def reviewer(db_session: AsyncSession) -> User:
    """A user allowed to adjudicate identity verifications."""
    return await _create_user(
        db_session,
        "reviewer@example.com",
        "Test Reviewer",
        Capability.ADMIN_IDENTITY_REVIEW,
    )


@pytest_asyncio.fixture
async def permission_admin(db_session: AsyncSession) -> User:
    """A user allowed to manage grants."""
    return await _create_user(
        db_session,
        "permadmin@example.com",
        "Permission Admin",
        Capability.MANAGE_PERMISSIONS,
    )


@pytest.fixture
def jwt_manager() -> JWTManager:
    """JWT manager using the test settings' secret."""
    return JWTManager()


@pytest.fixture
def auth_headers(jwt_manager: JWTManager) -> Callable[[User], dict]:
    """Build Authorization headers for a user."""

    def _headers(user: User) -> dict:
        token, _, _ = jwt_manager.create_access_token(user_id=user.id, email=user.email)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(db_schema) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the app in-process."""
    from civictrust.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
