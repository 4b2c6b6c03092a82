"""
Pytest fixtures for Herbario tests.

Tests run against a throwaway SQLite database; the environment is set before
any herbario module is imported so the engine and settings pick it up.
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator, Callable

_TEST_DIR = tempfile.mkdtemp(prefix="herbario-tests-")

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/herbario_test.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-0123456789"
os.environ["ALLOWED_ORIGINS"] = "http://localhost:3000"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from herbario.api.middleware.rate_limit import get_store
from herbario.config import Settings, get_settings
from herbario.database import async_session_maker, engine
from herbario.kernel.identity.jwt import JWTManager, get_jwt_manager, reset_jwt_manager
from herbario.kernel.identity.password import hash_password
from herbario.kernel.models.base import Base
from herbario.kernel.models.plant import Plant, PlantImage, PlantStatus
from herbario.kernel.models.user import User
from herbario.main import app

get_settings.cache_clear()
reset_jwt_manager()

ALLOWED_ORIGIN = "http://localhost:3000"
ADMIN_EMAIL = "admin@herbario.example"
ADMIN_PASSWORD = "AdminPass123"
USER_EMAIL = "editor@herbario.example"
USER_PASSWORD = "EditorPass123"

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)

# Hashed once: bcrypt at 12 rounds is slow enough to matter per test
_ADMIN_HASH = hash_password(ADMIN_PASSWORD)
_USER_HASH = hash_password(USER_PASSWORD)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Fresh schema for every test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app, sending an allowed Origin by default."""
    get_store().reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Origin": ALLOWED_ORIGIN},
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def bare_client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that sends neither Origin nor Referer."""
    get_store().reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    user = User(
        id=uuid.uuid4(),
        email=ADMIN_EMAIL,
        password_hash=_ADMIN_HASH,
        is_admin=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def regular_user(db_session: AsyncSession) -> User:
    user = User(
        id=uuid.uuid4(),
        email=USER_EMAIL,
        password_hash=_USER_HASH,
        is_admin=False,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def pending_plant(db_session: AsyncSession) -> Plant:
    plant = Plant(
        id=uuid.uuid4(),
        name="Romero",
        scientific_name="Salvia rosmarinus",
        family="Lamiaceae",
        status=PlantStatus.PENDING.value,
    )
    db_session.add(plant)
    await db_session.commit()
    await db_session.refresh(plant)
    return plant


@pytest_asyncio.fixture
async def plant_with_image(db_session: AsyncSession) -> Plant:
    plant = Plant(
        id=uuid.uuid4(),
        name="Jara",
        scientific_name="Cistus ladanifer",
        family="Cistaceae",
        status=PlantStatus.ACCEPTED.value,
    )
    db_session.add(plant)
    await db_session.flush()
    db_session.add(PlantImage(plant_id=plant.id, mime_type="image/png", data=PNG_BYTES))
    await db_session.commit()
    await db_session.refresh(plant)
    return plant


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager(
        secret_key="test-secret-key-for-testing-only",
        algorithm="HS256",
        access_token_expire_minutes=30,
    )


def bearer(user: User) -> dict:
    """Authorization header for a user, signed with the app's own key."""
    token, _ = get_jwt_manager().create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role.value,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return bearer(admin_user)


@pytest.fixture
def user_headers(regular_user: User) -> dict:
    return bearer(regular_user)


@pytest.fixture
def override_settings(monkeypatch) -> Callable[..., Settings]:
    """
    Reload settings with some values replaced for the rest of the test.

    Usage:
        def test_x(override_settings):
            override_settings(environment="production")
    """

    def apply(**values) -> Settings:
        for key, value in values.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()
        return get_settings()

    yield apply
    get_settings.cache_clear()
    get_store().reset()


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def admin_credentials(admin_user: User) -> dict:
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}


@pytest.fixture
def user_credentials(regular_user: User) -> dict:
    return {"email": USER_EMAIL, "password": USER_PASSWORD}
