"""
Core module exports.
"""
from .enums import (
    SyncOperation,
    SyncStatus,
    SyncJobType,
    JobStatus,
    NotificationType,
    SYSTEM_ACTOR,
    SYNC_ABANDONED_MESSAGE,
)
from .checksum import compute_checksum, entity_checksum
from .locking import with_optimistic_lock

__all__ = [
    'SyncOperation',
    'SyncStatus',
    'SyncJobType',
    'JobStatus',
    'NotificationType',
    'SYSTEM_ACTOR',
    'SYNC_ABANDONED_MESSAGE',
    'compute_checksum',
    'entity_checksum',
    'with_optimistic_lock',
]
