"""Test fixtures for taskflow-api."""

import os

# Cheap password hashing for tests; must be set before settings load
os.environ.setdefault("TASKFLOW_API_BCRYPT_ROUNDS", "4")

import asyncio  # noqa: E402
from collections.abc import AsyncGenerator, AsyncIterator  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402

from taskflow_api.db import get_db  # noqa: E402
from taskflow_api.main import app  # noqa: E402
from taskflow_api.models import Base, User  # noqa: E402
from taskflow_api.services.users import create_user  # noqa: E402

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "secret123"


def get_alembic_config(connection_url: str | None = None) -> Config:
    """Get alembic config for running migrations."""
    base_path = Path(__file__).parent.parent
    alembic_cfg = Config(str(base_path / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(base_path / "migrations"))
    if connection_url:
        alembic_cfg.set_main_option("sqlalchemy.url", connection_url)
    return alembic_cfg


@pytest.fixture
async def async_engine():
    """Create a test database engine with schema initialized.

    For SQLite tests, we use Base.metadata.create_all() since the migrations
    are PostgreSQL-specific. Against PostgreSQL, use the pg_engine fixture.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(async_engine, expire_on_commit=False)
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def _app_client(engine) -> AsyncIterator[AsyncClient]:
    async_session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def client(async_engine) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with isolated database."""
    async with _app_client(async_engine) as ac:
        yield ac


@pytest.fixture
async def file_engine(tmp_path):
    """File-backed SQLite engine with a connection per session.

    The in-memory engine shares one connection between sessions, so
    concurrent requests against it run inside a single transaction.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'taskflow.db'}"
    engine = create_async_engine(
        url, poolclass=NullPool, connect_args={"timeout": 30}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_client(file_engine) -> AsyncGenerator[AsyncClient, None]:
    async with _app_client(file_engine) as ac:
        yield ac


@pytest.fixture
def make_user(async_session: AsyncSession):
    """Factory creating committed users directly through the identity store."""

    async def _make_user(name: str, email: str | None = None) -> User:
        user = await create_user(
            async_session,
            name=name,
            email=email or f"{name.lower()}@example.com",
            password=TEST_PASSWORD,
        )
        await async_session.commit()
        return user

    return _make_user


@pytest.fixture
def register(client: AsyncClient):
    """Factory registering a user over HTTP.

    Returns (user_id, auth headers).
    """

    async def _register(name: str, email: str | None = None) -> tuple[str, dict]:
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "name": name,
                "email": email or f"{name.lower()}@example.com",
                "password": TEST_PASSWORD,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return data["user"]["id"], {
            "Authorization": f"Bearer {data['access_token']}"
        }

    return _register


# PostgreSQL test fixtures for integration testing with real migrations


@pytest.fixture
async def pg_engine():
    """Create a PostgreSQL test database engine with migrations applied.

    Requires TASKFLOW_API_TEST_DATABASE_URL, e.g.
    TASKFLOW_API_TEST_DATABASE_URL=postgresql+asyncpg://... pytest
    """
    pg_url = os.environ.get("TASKFLOW_API_TEST_DATABASE_URL")
    if not pg_url:
        pytest.skip("PostgreSQL test database URL not configured")

    engine = create_async_engine(pg_url, echo=False)

    # env.py drives its own event loop, so keep it off this one
    alembic_cfg = get_alembic_config(pg_url)
    await asyncio.to_thread(command.upgrade, alembic_cfg, "head")

    yield engine

    await asyncio.to_thread(command.downgrade, alembic_cfg, "base")
    await engine.dispose()
