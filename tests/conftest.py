"""
Test configuration for the Messaging Service.

This module provides test fixtures for database access, authentication,
the real-time channel and API client testing.
"""

import os
import tempfile
from pathlib import Path
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load test settings before the service modules read their configuration
env_path = Path(__file__).parent.parent / ".env.test"
if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=True)

_default_db_file = Path(tempfile.gettempdir()) / f"messaging_service_test_{os.getpid()}.db"
os.environ.setdefault("MESSAGING_SERVICE_DATABASE_URL", f"sqlite+aiosqlite:///{_default_db_file}")
os.environ.setdefault("MESSAGING_SERVICE_ENVIRONMENT", "testing")
os.environ.setdefault("MESSAGING_SERVICE_USER_JWT_SECRET_KEY", "test-user-secret")
os.environ.setdefault("MESSAGING_SERVICE_USER_JWT_ISSUER", "kgents_auth_service")
os.environ.setdefault("MESSAGING_SERVICE_USER_JWT_AUDIENCE", "authenticated")
os.environ.setdefault("MESSAGING_SERVICE_M2M_JWT_SECRET_KEY", "test-m2m-secret")
os.environ.setdefault("MESSAGING_SERVICE_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("MESSAGING_SERVICE_REALTIME_BACKEND", "memory")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from messaging_service.clients.directory_client import get_directory_client
from messaging_service.db import get_db, get_session_factory
from messaging_service.main import app as fastapi_app
from messaging_service.models import Base
from messaging_service.services.realtime import InMemoryRealtimeChannel, get_realtime_channel

from tests.fixtures.directory import FakeDirectoryClient

TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL", os.environ["MESSAGING_SERVICE_DATABASE_URL"]
)

# NullPool: every session opens its own connection, so concurrent sessions
# behave like independent clients and no connection outlives its event loop
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

if test_engine.dialect.name == "sqlite":

    @event.listens_for(test_engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


TestingSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


async def override_get_db_session():
    """
    Override the database session dependency for testing.

    Yields:
        AsyncSession: Test database session
    """
    async with TestingSessionLocal() as session:
        yield session


async def create_schema() -> None:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def drop_schema() -> None:
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# Fixture for the database session
@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for a test.

    Tables are dropped and recreated for each test.
    """
    await create_schema()
    async with TestingSessionLocal() as session:
        yield session
    await drop_schema()


@pytest.fixture
def session_factory():
    return TestingSessionLocal


@pytest.fixture
def channel() -> InMemoryRealtimeChannel:
    return InMemoryRealtimeChannel(max_queue=10)


@pytest.fixture
def directory() -> FakeDirectoryClient:
    return FakeDirectoryClient()


@pytest.fixture
def app_overrides(channel, directory):
    """Point the app at the test database, channel and directory."""
    fastapi_app.dependency_overrides[get_db] = override_get_db_session
    fastapi_app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    fastapi_app.dependency_overrides[get_realtime_channel] = lambda: channel
    fastapi_app.dependency_overrides[get_directory_client] = lambda: directory
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


# Fixture for the FastAPI test client
@pytest_asyncio.fixture
async def client(db_session, app_overrides) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an AsyncClient for testing FastAPI routes.

    Yields:
        AsyncClient: HTTP test client
    """
    transport = ASGITransport(app=app_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
