"""
Shared enums and constants used across the sync engine.
"""

from enum import Enum


class SyncOperation(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class SyncStatus(str, Enum):
    """Lifecycle of a sync queue item"""
    PENDING = "PENDING"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"


class SyncJobType(str, Enum):
    BATCH_SYNC = "batch-sync"
    CRITICAL_SYNC = "critical-sync"
    TYPE_SYNC = "type-sync"
    CUSTOM_SYNC = "custom-sync"
    RETRY_SYNC = "retry-sync"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class NotificationType(str, Enum):
    SYNC_FAILED = "sync_failed"


# Background sync tags with fixed meaning; anything else is either
# "sync-<entity type>" or a custom tag.
SYNC_ALL_TAG = "sync-all"
SYNC_CRITICAL_TAG = "sync-critical"
SYNC_TAG_PREFIX = "sync-"

SYSTEM_ACTOR = "system"
SYNC_ABANDONED_MESSAGE = "Max retries exceeded - sync abandoned"
