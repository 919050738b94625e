from assetsync.services.background_sync_service import BackgroundSyncService, classify_sync_tag
from assetsync.services.notification_service import NotificationService, NotificationSink
from assetsync.services.sync_client_service import SyncClientService
from assetsync.services.sync_health_service import SyncHealthService, evaluate_health
from assetsync.services.sync_job_queue import DatabaseJobQueue, JobQueue
from assetsync.services.sync_metadata_service import SyncMetadataService
from assetsync.services.sync_pull_service import SyncPullService
from assetsync.services.sync_queue_service import SyncQueueService
from assetsync.services.sync_tracking import SyncTrackingStore

__all__ = [
    "BackgroundSyncService",
    "classify_sync_tag",
    "NotificationService",
    "NotificationSink",
    "SyncClientService",
    "SyncHealthService",
    "evaluate_health",
    "DatabaseJobQueue",
    "JobQueue",
    "SyncMetadataService",
    "SyncPullService",
    "SyncQueueService",
    "SyncTrackingStore",
]
