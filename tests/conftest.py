# tests/conftest.py
import os

# Settings are read when assetsync.database is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from unittest.mock import AsyncMock
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from assetsync.core.config import Settings, SyncPolicy
from assetsync.core.enums import SyncOperation, SyncStatus
from assetsync.database import Base
from assetsync.models import SyncClient, SyncQueueItem, User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="session")
def settings():
    """Provide test settings"""
    return Settings(DATABASE_URL=TEST_DATABASE_URL)


@pytest.fixture
def policy():
    """Default sync policy"""
    return SyncPolicy()


@pytest.fixture(scope="function")
async def test_engine():
    """In-memory SQLite engine with all tables created (function-scoped)."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Provide a database session for tests"""
    async_session_local = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session_local() as session:
        yield session
        await session.rollback()


# Mock collaborators
@pytest.fixture
def mock_job_queue():
    queue = AsyncMock()
    queue.enqueue = AsyncMock()
    return queue


@pytest.fixture
def mock_notifications():
    sink = AsyncMock()
    sink.create = AsyncMock()
    return sink


# Row factories
@pytest.fixture
def make_user(db_session):
    async def _make_user(organization_id="org-1", **kwargs):
        user = User(organization_id=organization_id, **kwargs)
        db_session.add(user)
        await db_session.flush()
        return user
    return _make_user


@pytest.fixture
def make_client(db_session):
    async def _make_client(user, device_id="device-1", **kwargs):
        client = SyncClient(user=user, device_id=device_id, **kwargs)
        db_session.add(client)
        await db_session.flush()
        return client
    return _make_client


@pytest.fixture
def make_queue_item(db_session):
    async def _make_queue_item(
        client,
        entity_type="asset",
        operation=SyncOperation.CREATE.value,
        status=SyncStatus.PENDING.value,
        retry_count=0,
        **kwargs,
    ):
        item = SyncQueueItem(
            client_id=client.id,
            entity_type=entity_type,
            operation=operation,
            status=status,
            retry_count=retry_count,
            payload=kwargs.pop("payload", {}),
            **kwargs,
        )
        db_session.add(item)
        await db_session.flush()
        return item
    return _make_queue_item
