"""
Sync Queue Service

Data access for ``sync_queue`` rows: the fetches used by the event router and
retry logic, the item status transitions, per-client statistics and
housekeeping.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.enums import SyncStatus
from assetsync.core.exceptions import NotFoundError, SyncValidationError
from assetsync.models.sync_queue import SyncQueueItem
from assetsync.schemas.sync import SyncQueueStats

logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 2000


class SyncQueueService:

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Fetches
    # ------------------------------------------------------------------
    async def fetch_pending_items(self, client_id: str, limit: Optional[int] = None) -> List[SyncQueueItem]:
        """Pending items for a client, least-retried and oldest first."""
        stmt = (
            select(SyncQueueItem)
            .where(
                SyncQueueItem.client_id == client_id,
                SyncQueueItem.status == SyncStatus.PENDING.value,
            )
            .order_by(SyncQueueItem.retry_count.asc(), SyncQueueItem.created_at.asc())
        )
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def fetch_retryable_failed(self, client_id: str, max_retries: int) -> List[SyncQueueItem]:
        stmt = (
            select(SyncQueueItem)
            .where(
                SyncQueueItem.client_id == client_id,
                SyncQueueItem.status == SyncStatus.FAILED.value,
                SyncQueueItem.retry_count < max_retries,
            )
            .order_by(SyncQueueItem.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_item(self, item_id: str) -> SyncQueueItem:
        item = await self.db.get(SyncQueueItem, item_id)
        if item is None:
            raise NotFoundError(f"Sync queue item {item_id} not found")
        return item

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------
    async def mark_items_failed(self, item_ids: Iterable[str], error_message: str) -> int:
        ids = list(item_ids)
        if not ids:
            return 0
        stmt = (
            update(SyncQueueItem)
            .where(SyncQueueItem.id.in_(ids))
            .values(
                status=SyncStatus.FAILED.value,
                error_message=error_message[:MAX_ERROR_MESSAGE_LENGTH],
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def reset_items_to_pending(self, item_ids: Iterable[str]) -> int:
        ids = list(item_ids)
        if not ids:
            return 0
        stmt = (
            update(SyncQueueItem)
            .where(SyncQueueItem.id.in_(ids))
            .values(status=SyncStatus.PENDING.value, error_message=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def _reload(self, item_id: str) -> SyncQueueItem:
        result = await self.db.execute(
            select(SyncQueueItem)
            .where(SyncQueueItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        item = result.scalar_one_or_none()
        if item is None:
            raise NotFoundError(f"Sync queue item {item_id} not found")
        return item

    async def _reject_transition(self, item_id: str, target: str) -> None:
        item = await self._reload(item_id)
        raise SyncValidationError(
            f"Sync queue item {item_id} is {item.status}; only PENDING items can become {target}"
        )

    async def mark_item_completed(self, item_id: str) -> SyncQueueItem:
        """Mark a PENDING item delivered. Any other status is rejected."""
        stmt = (
            update(SyncQueueItem)
            .where(
                SyncQueueItem.id == item_id,
                SyncQueueItem.status == SyncStatus.PENDING.value,
            )
            .values(
                status=SyncStatus.COMPLETED.value,
                processed_at=datetime.now(timezone.utc),
                error_message=None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self._reject_transition(item_id, SyncStatus.COMPLETED.value)
        return await self._reload(item_id)

    async def record_item_failure(self, item_id: str, error_message: str, max_retries: int) -> SyncQueueItem:
        """
        Count a failed delivery attempt on a PENDING item. The item stays
        PENDING until ``max_retries`` attempts have failed, then it is FAILED.
        """
        attempts = func.coalesce(SyncQueueItem.retry_count, 0) + 1
        stmt = (
            update(SyncQueueItem)
            .where(
                SyncQueueItem.id == item_id,
                SyncQueueItem.status == SyncStatus.PENDING.value,
            )
            .values(
                retry_count=attempts,
                error_message=(error_message or "")[:MAX_ERROR_MESSAGE_LENGTH],
                status=case(
                    (attempts < max_retries, SyncStatus.PENDING.value),
                    else_=SyncStatus.FAILED.value,
                ),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self._reject_transition(item_id, "failed")

        item = await self._reload(item_id)
        if item.status == SyncStatus.FAILED.value:
            logger.warning(f"Sync queue item {item_id} failed after {item.retry_count} attempts")
        return item

    # ------------------------------------------------------------------
    # Stats and housekeeping
    # ------------------------------------------------------------------
    async def get_queue_stats(self, client_id: str) -> SyncQueueStats:
        status_rows = await self.db.execute(
            select(SyncQueueItem.status, func.count(SyncQueueItem.id))
            .where(SyncQueueItem.client_id == client_id)
            .group_by(SyncQueueItem.status)
        )
        counts = {status: count for status, count in status_rows.all()}

        pending_filter = (
            SyncQueueItem.client_id == client_id,
            SyncQueueItem.status == SyncStatus.PENDING.value,
        )
        type_rows = await self.db.execute(
            select(SyncQueueItem.entity_type, func.count(SyncQueueItem.id))
            .where(*pending_filter)
            .group_by(SyncQueueItem.entity_type)
        )
        oldest = await self.db.execute(
            select(func.min(SyncQueueItem.created_at)).where(*pending_filter)
        )

        return SyncQueueStats(
            pending=counts.get(SyncStatus.PENDING.value, 0),
            failed=counts.get(SyncStatus.FAILED.value, 0),
            completed=counts.get(SyncStatus.COMPLETED.value, 0),
            by_entity_type={entity_type: count for entity_type, count in type_rows.all()},
            oldest_pending=oldest.scalar(),
        )

    async def cleanup(self, days_to_keep: int) -> int:
        """Delete COMPLETED items processed more than ``days_to_keep`` days ago."""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days_to_keep)
        stmt = (
            delete(SyncQueueItem)
            .where(
                SyncQueueItem.status == SyncStatus.COMPLETED.value,
                SyncQueueItem.processed_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount
