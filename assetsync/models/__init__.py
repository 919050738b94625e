from .user import User
from .sync_client import SyncClient
from .sync_queue import SyncQueueItem
from .sync_metadata import SyncMetadata
from .notification import Notification
from .job import Job
from .entities import Asset, Task, Schedule, Location

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'User',
    'SyncClient',
    'SyncQueueItem',
    'SyncMetadata',
    'Notification',
    'Job',
    'Asset',
    'Task',
    'Schedule',
    'Location',
]
