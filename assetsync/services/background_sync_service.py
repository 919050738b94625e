"""
Background Sync Service

Handles background sync registration for client devices, routes inbound
sync events to the job queue, escalates exhausted retries on last-chance
events and provides the retry/cleanup/stats operations for sync queues.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.config import SyncPolicy, get_sync_policy
from assetsync.core.enums import (
    SYNC_ABANDONED_MESSAGE,
    SYNC_ALL_TAG,
    SYNC_CRITICAL_TAG,
    SYNC_TAG_PREFIX,
    NotificationType,
    SyncJobType,
    SyncOperation,
)
from assetsync.core.exceptions import SyncClientNotFoundError
from assetsync.models.sync_client import SyncClient
from assetsync.models.sync_queue import SyncQueueItem
from assetsync.schemas.sync import (
    BackgroundSyncEvent,
    BackgroundSyncRegistration,
    BatchSyncJob,
    CriticalSyncJob,
    CustomSyncJob,
    RetrySyncJob,
    SyncJobBase,
    SyncQueueStats,
    SyncTokenState,
    TypeSyncJob,
)
from assetsync.services.notification_service import NotificationSink
from assetsync.services.sync_client_service import SyncClientService
from assetsync.services.sync_job_queue import JobQueue
from assetsync.services.sync_queue_service import SyncQueueService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncTagRoute:
    """What a background sync tag asks for."""
    job_type: SyncJobType
    entity_type: Optional[str] = None
    tag: Optional[str] = None


def classify_sync_tag(tag: str, syncable_types: Iterable[str]) -> SyncTagRoute:
    """
    Map a sync tag to a job type.

    ``sync-all`` and ``sync-critical`` are fixed; ``sync-<types>`` names a
    syncable entity type in plural or singular form; anything else is custom.
    """
    if tag == SYNC_ALL_TAG:
        return SyncTagRoute(SyncJobType.BATCH_SYNC)
    if tag == SYNC_CRITICAL_TAG:
        return SyncTagRoute(SyncJobType.CRITICAL_SYNC)

    if tag.startswith(SYNC_TAG_PREFIX):
        suffix = tag[len(SYNC_TAG_PREFIX):].lower()
        entity_type = suffix[:-1] if suffix.endswith("s") else suffix
        if entity_type in set(syncable_types):
            return SyncTagRoute(SyncJobType.TYPE_SYNC, entity_type=entity_type)

    return SyncTagRoute(SyncJobType.CUSTOM_SYNC, tag=tag)


@dataclass
class SyncEventResult:
    """Outcome of one processed sync event."""
    pending_count: int = 0
    job: Optional[SyncJobBase] = None
    abandoned_ids: List[str] = field(default_factory=list)


class BackgroundSyncService:

    def __init__(
        self,
        db: AsyncSession,
        job_queue: JobQueue,
        notifications: NotificationSink,
        policy: Optional[SyncPolicy] = None,
        clients: Optional[SyncClientService] = None,
        queue: Optional[SyncQueueService] = None,
    ):
        self.db = db
        self.job_queue = job_queue
        self.notifications = notifications
        self.policy = policy or get_sync_policy()
        self.clients = clients or SyncClientService(db)
        self.queue = queue or SyncQueueService(db)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    async def register_background_sync(
        self,
        user_id: str,
        device_id: str,
        registration: BackgroundSyncRegistration,
        organization_id: Optional[str] = None,
    ) -> SyncTokenState:
        """
        Store a background sync registration in the client's sync token.

        Other sections of the token are kept as they are.
        """
        client = await self.clients.find_client(user_id, device_id)
        if client is None:
            raise SyncClientNotFoundError()
        if organization_id is not None:
            client = await self.clients.require_client(client.id, organization_id)

        updates = {"registered_at": datetime.now(timezone.utc)}
        if registration.min_interval is None:
            updates["min_interval"] = self.policy.min_sync_interval_ms
        if registration.max_retries is None:
            updates["max_retries"] = self.policy.max_retries

        state = SyncTokenState.from_token(client.sync_token)
        state.background_sync = registration.model_copy(update=updates)

        client.sync_token = state.to_payload()
        await self.db.flush()

        logger.info(f"Background sync registered for user {user_id}, device {device_id}, tag '{registration.tag}'")
        return state

    # ------------------------------------------------------------------
    # Event routing
    # ------------------------------------------------------------------
    async def process_sync_event(self, event: BackgroundSyncEvent) -> SyncEventResult:
        logger.info(
            f"Processing sync event '{event.tag}' for client {event.client_id} "
            f"(last_chance={event.last_chance})"
        )
        result = SyncEventResult()

        try:
            pending_items = await self.queue.fetch_pending_items(event.client_id, limit=self.policy.batch_size)
            result.pending_count = len(pending_items)

            if not pending_items:
                logger.info(f"No pending sync items for client {event.client_id} (tag '{event.tag}')")
                return result

            job = self._build_job(event, pending_items)
            if job is not None:
                await self.job_queue.enqueue(job)
                result.job = job

            if event.last_chance:
                result.abandoned_ids = await self._handle_last_chance(event, pending_items)

        except Exception as e:
            logger.error(f"Error processing sync event '{event.tag}' for client {event.client_id}: {str(e)}")
            raise

        return result

    def _build_job(self, event: BackgroundSyncEvent, items: Sequence[SyncQueueItem]) -> Optional[SyncJobBase]:
        route = classify_sync_tag(event.tag, self.policy.syncable_entity_types)
        client_id = event.client_id

        if route.job_type == SyncJobType.BATCH_SYNC:
            return BatchSyncJob(client_id=client_id, item_ids=[item.id for item in items])

        if route.job_type == SyncJobType.CRITICAL_SYNC:
            # Only status-update style changes are treated as critical
            critical_ids = [item.id for item in items if item.operation == SyncOperation.UPDATE.value]
            if not critical_ids:
                return None
            return CriticalSyncJob(
                client_id=client_id,
                item_ids=critical_ids,
                priority=self.policy.critical_priority,
            )

        if route.job_type == SyncJobType.TYPE_SYNC:
            type_ids = [item.id for item in items if item.entity_type == route.entity_type]
            if not type_ids:
                return None
            return TypeSyncJob(client_id=client_id, item_ids=type_ids, entity_type=route.entity_type)

        logger.info(f"Processing custom sync '{route.tag}' for client {client_id} ({len(items)} items)")
        return CustomSyncJob(client_id=client_id, item_ids=[item.id for item in items], tag=route.tag)

    async def _handle_last_chance(self, event: BackgroundSyncEvent, items: Sequence[SyncQueueItem]) -> List[str]:
        logger.warning(
            f"Last chance sync triggered for client {event.client_id} "
            f"(tag '{event.tag}', {len(items)} pending items)"
        )

        exhausted = [item for item in items if (item.retry_count or 0) >= self.policy.max_retries]
        if not exhausted:
            return []

        exhausted_ids = [item.id for item in exhausted]
        await self.queue.mark_items_failed(exhausted_ids, SYNC_ABANDONED_MESSAGE)
        logger.warning(f"Abandoned {len(exhausted_ids)} sync items for client {event.client_id}")

        await self._notify_failed_sync(event.client_id, exhausted)
        return exhausted_ids

    async def _notify_failed_sync(self, client_id: str, failed_items: Sequence[SyncQueueItem]) -> None:
        client = await self.clients.get_client(client_id, with_user=True)
        if client is None:
            logger.warning(f"Sync client {client_id} not found; no failure notification sent")
            return

        entity_types = list(dict.fromkeys(item.entity_type for item in failed_items))
        await self.notifications.create(
            user_id=client.user_id,
            type=NotificationType.SYNC_FAILED.value,
            title="Sync Failed",
            body=f"{len(failed_items)} items could not be synced and will need to be re-entered.",
            organization_id=client.user.organization_id if client.user else None,
            metadata={
                "clientId": client_id,
                "failedCount": len(failed_items),
                "entityTypes": entity_types,
            },
        )

    # ------------------------------------------------------------------
    # Retry, stats, cleanup
    # ------------------------------------------------------------------
    async def retry_failed_items(
        self,
        client_id: str,
        max_retries: Optional[int] = None,
        organization_id: Optional[str] = None,
    ) -> int:
        """Reset retryable FAILED items to PENDING and queue one retry job for them."""
        if organization_id is not None:
            await self.clients.require_client(client_id, organization_id)

        retry_limit = max_retries if max_retries is not None else self.policy.max_retries
        failed_items = await self.queue.fetch_retryable_failed(client_id, retry_limit)
        if not failed_items:
            return 0

        item_ids = [item.id for item in failed_items]
        await self.queue.reset_items_to_pending(item_ids)
        await self.job_queue.enqueue(RetrySyncJob(client_id=client_id, item_ids=item_ids))

        logger.info(f"Reset {len(item_ids)} failed sync items to pending for client {client_id}")
        return len(item_ids)

    async def get_sync_queue_stats(
        self,
        client_id: str,
        organization_id: Optional[str] = None,
    ) -> SyncQueueStats:
        if organization_id is not None:
            await self.clients.require_client(client_id, organization_id)
        return await self.queue.get_queue_stats(client_id)

    async def cleanup_sync_queue(self, days_to_keep: Optional[int] = None) -> int:
        days = days_to_keep if days_to_keep is not None else self.policy.retention_days
        deleted = await self.queue.cleanup(days)
        logger.info(f"Cleaned up {deleted} completed sync queue items older than {days} days")
        return deleted

    async def get_active_clients(self) -> List[SyncClient]:
        return await self.clients.get_active_clients()
