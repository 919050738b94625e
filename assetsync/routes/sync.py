from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.exceptions import (
    CrossTenantAccessError,
    NotFoundError,
    SyncServiceError,
    SyncValidationError,
    VersionConflictError,
)
from assetsync.dependencies import (
    get_background_sync_service,
    get_db,
    get_sync_client_service,
    get_sync_health_service,
    get_sync_metadata_service,
    get_sync_pull_service,
)
from assetsync.schemas.sync import (
    BackgroundSyncEvent,
    BackgroundSyncRegisterRequest,
    DeltaChangesPage,
    SyncClientRead,
    SyncClientRegister,
    SyncConflict,
    SyncEventResponse,
    SyncHealth,
    SyncMetadataRead,
    SyncQueueStats,
    SyncTokenState,
)
from assetsync.services.background_sync_service import BackgroundSyncService
from assetsync.services.sync_client_service import SyncClientService
from assetsync.services.sync_health_service import SyncHealthService
from assetsync.services.sync_metadata_service import SyncMetadataService
from assetsync.services.sync_pull_service import SyncPullService

router = APIRouter(prefix="/sync", tags=["sync"])


def to_http_exception(e: SyncServiceError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CrossTenantAccessError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, VersionConflictError):
        return HTTPException(
            status_code=409,
            detail={
                "message": str(e),
                "expectedVersion": e.expected_version,
                "actualVersion": e.actual_version,
            },
        )
    if isinstance(e, SyncValidationError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------

@router.post("/clients", response_model=SyncClientRead)
async def register_client(
    body: SyncClientRegister,
    db: AsyncSession = Depends(get_db),
    clients: SyncClientService = Depends(get_sync_client_service),
):
    client = await clients.register_client(body.user_id, body.device_id, body.device_name)
    await db.commit()
    return SyncClientRead.from_orm_model(client)


@router.delete("/clients/{user_id}/{device_id}", response_model=SyncClientRead)
async def unregister_device(
    user_id: str,
    device_id: str,
    db: AsyncSession = Depends(get_db),
    clients: SyncClientService = Depends(get_sync_client_service),
):
    try:
        client = await clients.unregister_device(user_id, device_id)
        await db.commit()
        return SyncClientRead.from_orm_model(client)
    except SyncServiceError as e:
        raise to_http_exception(e)


@router.get("/users/{user_id}/devices", response_model=List[SyncClientRead])
async def get_user_devices(
    user_id: str,
    clients: SyncClientService = Depends(get_sync_client_service),
):
    devices = await clients.get_user_devices(user_id)
    return [SyncClientRead.from_orm_model(device) for device in devices]


@router.get("/clients/{client_id}/stats", response_model=SyncQueueStats)
async def get_sync_queue_stats(
    client_id: str,
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    service: BackgroundSyncService = Depends(get_background_sync_service),
):
    try:
        return await service.get_sync_queue_stats(client_id, organization_id=organization_id)
    except SyncServiceError as e:
        raise to_http_exception(e)


@router.post("/clients/{client_id}/retry")
async def retry_failed_items(
    client_id: str,
    max_retries: Optional[int] = Query(None, alias="maxRetries", ge=0),
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    db: AsyncSession = Depends(get_db),
    service: BackgroundSyncService = Depends(get_background_sync_service),
):
    try:
        count = await service.retry_failed_items(client_id, max_retries, organization_id=organization_id)
        await db.commit()
        return {"clientId": client_id, "resetCount": count}
    except SyncServiceError as e:
        raise to_http_exception(e)


# ---------------------------------------------------------------------------
# Background sync
# ---------------------------------------------------------------------------

@router.post("/background/register", response_model=SyncTokenState, response_model_exclude_none=True)
async def register_background_sync(
    body: BackgroundSyncRegisterRequest,
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    db: AsyncSession = Depends(get_db),
    service: BackgroundSyncService = Depends(get_background_sync_service),
):
    try:
        state = await service.register_background_sync(
            body.user_id,
            body.device_id,
            body.registration,
            organization_id=organization_id,
        )
        await db.commit()
        return state
    except SyncServiceError as e:
        raise to_http_exception(e)


@router.post("/events", response_model=SyncEventResponse)
async def process_sync_event(
    event: BackgroundSyncEvent,
    db: AsyncSession = Depends(get_db),
    service: BackgroundSyncService = Depends(get_background_sync_service),
):
    result = await service.process_sync_event(event)
    await db.commit()
    return SyncEventResponse(
        pending_count=result.pending_count,
        job_type=result.job.type if result.job else None,
        item_ids=result.job.item_ids if result.job else [],
        abandoned_ids=result.abandoned_ids,
    )


@router.get("/health/{organization_id}", response_model=SyncHealth)
async def get_sync_health(
    organization_id: str,
    service: SyncHealthService = Depends(get_sync_health_service),
):
    return await service.get_sync_health(organization_id)


# ---------------------------------------------------------------------------
# Metadata query
# ---------------------------------------------------------------------------

@router.get("/metadata", response_model=List[SyncMetadataRead])
async def list_sync_metadata(
    entity_type: Optional[str] = Query(None, alias="entityType"),
    include_deleted: bool = Query(True, alias="includeDeleted"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: SyncMetadataService = Depends(get_sync_metadata_service),
):
    rows = await service.list_sync_metadata(entity_type, include_deleted, limit, offset)
    return [SyncMetadataRead.from_orm_model(row) for row in rows]


@router.get("/metadata/{entity_type}/{entity_id}", response_model=SyncMetadataRead)
async def get_sync_metadata(
    entity_type: str,
    entity_id: str,
    service: SyncMetadataService = Depends(get_sync_metadata_service),
):
    metadata = await service.get_sync_metadata(entity_type, entity_id)
    if metadata is None:
        raise HTTPException(status_code=404, detail=f"No sync metadata for {entity_type} {entity_id}")
    return SyncMetadataRead.from_orm_model(metadata)


@router.get("/metadata/{entity_type}/{entity_id}/conflict", response_model=Optional[SyncConflict])
async def detect_conflict(
    entity_type: str,
    entity_id: str,
    client_version: int = Query(..., alias="clientVersion", ge=0),
    service: SyncMetadataService = Depends(get_sync_metadata_service),
):
    return await service.detect_conflict(entity_type, entity_id, client_version)


@router.get("/changes", response_model=DeltaChangesPage)
async def get_delta_changes(
    client_id: Optional[str] = Query(None, alias="clientId"),
    since: Optional[datetime] = Query(None),
    entity_types: Optional[List[str]] = Query(None, alias="entityType"),
    page_size: int = Query(100, alias="pageSize", ge=1, le=1000),
    page_token: Optional[str] = Query(None, alias="pageToken"),
    organization_id: Optional[str] = Query(None, alias="organizationId"),
    service: SyncPullService = Depends(get_sync_pull_service),
):
    try:
        return await service.get_delta_changes(
            client_id,
            since=since,
            entity_types=entity_types,
            page_size=page_size,
            page_token=page_token,
            organization_id=organization_id,
        )
    except SyncServiceError as e:
        raise to_http_exception(e)
