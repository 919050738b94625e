from .base import BaseSchema
from .sync import (
    BackgroundSyncRegistration,
    SyncTokenState,
    BackgroundSyncEvent,
    SyncJob,
    BatchSyncJob,
    CriticalSyncJob,
    TypeSyncJob,
    CustomSyncJob,
    RetrySyncJob,
    SyncQueueStats,
    SyncHealth,
    SyncMetadataRead,
    SyncChange,
    DeltaChangesPage,
    SyncConflict,
    SyncClientRead,
    SyncClientRegister,
    BackgroundSyncRegisterRequest,
    SyncEventResponse,
)

__all__ = [
    'BaseSchema',
    'BackgroundSyncRegistration',
    'SyncTokenState',
    'BackgroundSyncEvent',
    'SyncJob',
    'BatchSyncJob',
    'CriticalSyncJob',
    'TypeSyncJob',
    'CustomSyncJob',
    'RetrySyncJob',
    'SyncQueueStats',
    'SyncHealth',
    'SyncMetadataRead',
    'SyncChange',
    'DeltaChangesPage',
    'SyncConflict',
    'SyncClientRead',
    'SyncClientRegister',
    'BackgroundSyncRegisterRequest',
    'SyncEventResponse',
]
