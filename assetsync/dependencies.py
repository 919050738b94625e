from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.config import get_sync_policy
from assetsync.database import async_session
from assetsync.repositories import build_default_registry
from assetsync.services.background_sync_service import BackgroundSyncService
from assetsync.services.notification_service import NotificationService
from assetsync.services.sync_client_service import SyncClientService
from assetsync.services.sync_health_service import SyncHealthService
from assetsync.services.sync_job_queue import DatabaseJobQueue
from assetsync.services.sync_metadata_service import SyncMetadataService
from assetsync.services.sync_pull_service import SyncPullService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_background_sync_service(db: AsyncSession = Depends(get_db)) -> BackgroundSyncService:
    return BackgroundSyncService(
        db,
        job_queue=DatabaseJobQueue(db),
        notifications=NotificationService(db),
        policy=get_sync_policy(),
    )


def get_sync_health_service(db: AsyncSession = Depends(get_db)) -> SyncHealthService:
    return SyncHealthService(db, policy=get_sync_policy())


def get_sync_metadata_service(db: AsyncSession = Depends(get_db)) -> SyncMetadataService:
    return SyncMetadataService(db)


def get_sync_pull_service(db: AsyncSession = Depends(get_db)) -> SyncPullService:
    return SyncPullService(db, build_default_registry(db))


def get_sync_client_service(db: AsyncSession = Depends(get_db)) -> SyncClientService:
    return SyncClientService(db)
