# tests/unit/services/test_sync_queue_service.py
import pytest
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from assetsync.core.enums import SyncStatus
from assetsync.core.exceptions import NotFoundError, SyncValidationError
from assetsync.models import SyncQueueItem
from assetsync.services.sync_queue_service import SyncQueueService


@pytest.fixture
def queue(db_session):
    return SyncQueueService(db_session)


@pytest.fixture
async def client(make_user, make_client):
    user = await make_user()
    return await make_client(user)


async def _reload(db_session, item_id):
    result = await db_session.execute(
        select(SyncQueueItem)
        .where(SyncQueueItem.id == item_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest.mark.asyncio
async def test_fetch_pending_items_orders_by_retry_count(queue, client, make_queue_item):
    retried = await make_queue_item(client, retry_count=2)
    fresh = await make_queue_item(client, retry_count=0)
    await make_queue_item(client, status=SyncStatus.FAILED.value)
    await make_queue_item(client, status=SyncStatus.COMPLETED.value)

    items = await queue.fetch_pending_items(client.id)

    assert [item.id for item in items] == [fresh.id, retried.id]


@pytest.mark.asyncio
async def test_fetch_pending_items_respects_limit(queue, client, make_queue_item):
    for _ in range(5):
        await make_queue_item(client)

    items = await queue.fetch_pending_items(client.id, limit=3)

    assert len(items) == 3


@pytest.mark.asyncio
async def test_fetch_pending_items_is_per_client(queue, client, make_user, make_client, make_queue_item):
    other_user = await make_user()
    other = await make_client(other_user, device_id="device-2")
    await make_queue_item(other)

    assert await queue.fetch_pending_items(client.id) == []


@pytest.mark.asyncio
async def test_fetch_retryable_failed_applies_ceiling(queue, client, make_queue_item):
    eligible = await make_queue_item(client, status=SyncStatus.FAILED.value, retry_count=2)
    await make_queue_item(client, status=SyncStatus.FAILED.value, retry_count=3)
    await make_queue_item(client, status=SyncStatus.PENDING.value, retry_count=0)

    items = await queue.fetch_retryable_failed(client.id, max_retries=3)

    assert [item.id for item in items] == [eligible.id]


@pytest.mark.asyncio
async def test_mark_items_failed_and_reset(queue, db_session, client, make_queue_item):
    item = await make_queue_item(client)

    assert await queue.mark_items_failed([item.id], "boom") == 1
    failed = await _reload(db_session, item.id)
    assert failed.status == SyncStatus.FAILED.value
    assert failed.error_message == "boom"

    assert await queue.reset_items_to_pending([item.id]) == 1
    reset = await _reload(db_session, item.id)
    assert reset.status == SyncStatus.PENDING.value
    assert reset.error_message is None


@pytest.mark.asyncio
async def test_bulk_transitions_with_no_ids(queue):
    assert await queue.mark_items_failed([], "unused") == 0
    assert await queue.reset_items_to_pending([]) == 0


@pytest.mark.asyncio
async def test_reset_is_idempotent_for_pending_items(queue, db_session, client, make_queue_item):
    item = await make_queue_item(client)

    await queue.reset_items_to_pending([item.id])
    await queue.reset_items_to_pending([item.id])

    assert (await _reload(db_session, item.id)).status == SyncStatus.PENDING.value


@pytest.mark.asyncio
async def test_mark_item_completed(queue, client, make_queue_item):
    item = await make_queue_item(client, error_message="earlier failure")

    completed = await queue.mark_item_completed(item.id)

    assert completed.status == SyncStatus.COMPLETED.value
    assert completed.processed_at is not None
    assert completed.error_message is None


@pytest.mark.asyncio
async def test_mark_item_completed_missing(queue):
    with pytest.raises(NotFoundError):
        await queue.mark_item_completed("missing")


@pytest.mark.asyncio
async def test_record_item_failure_returns_to_pending_until_exhausted(queue, client, make_queue_item):
    item = await make_queue_item(client)

    first = await queue.record_item_failure(item.id, "timeout", max_retries=2)
    assert first.retry_count == 1
    assert first.status == SyncStatus.PENDING.value

    second = await queue.record_item_failure(item.id, "timeout again", max_retries=2)
    assert second.retry_count == 2
    assert second.status == SyncStatus.FAILED.value
    assert second.error_message == "timeout again"


@pytest.mark.asyncio
async def test_record_item_failure_truncates_message(queue, client, make_queue_item):
    item = await make_queue_item(client)

    updated = await queue.record_item_failure(item.id, "x" * 5000, max_retries=3)

    assert len(updated.error_message) == 2000


@pytest.mark.asyncio
async def test_late_failure_on_completed_item_is_rejected(queue, db_session, client, make_queue_item):
    item = await make_queue_item(client)
    await queue.mark_item_completed(item.id)

    with pytest.raises(SyncValidationError):
        await queue.record_item_failure(item.id, "late error", max_retries=3)

    reloaded = await _reload(db_session, item.id)
    assert reloaded.status == SyncStatus.COMPLETED.value
    assert reloaded.retry_count == 0


@pytest.mark.asyncio
async def test_abandoned_item_cannot_be_completed(queue, db_session, client, make_queue_item):
    item = await make_queue_item(client, retry_count=3)
    await queue.mark_items_failed([item.id], "Max retries exceeded - sync abandoned")

    with pytest.raises(SyncValidationError):
        await queue.mark_item_completed(item.id)

    reloaded = await _reload(db_session, item.id)
    assert reloaded.status == SyncStatus.FAILED.value
    assert reloaded.processed_at is None


@pytest.mark.asyncio
async def test_record_item_failure_missing(queue):
    with pytest.raises(NotFoundError):
        await queue.record_item_failure("missing", "timeout", max_retries=3)


@pytest.mark.asyncio
async def test_get_queue_stats(queue, client, make_queue_item):
    await make_queue_item(client, entity_type="asset")
    await make_queue_item(client, entity_type="asset")
    await make_queue_item(client, entity_type="task")
    await make_queue_item(client, entity_type="task", status=SyncStatus.FAILED.value)
    await make_queue_item(client, entity_type="schedule", status=SyncStatus.COMPLETED.value)

    stats = await queue.get_queue_stats(client.id)

    assert stats.pending == 3
    assert stats.failed == 1
    assert stats.completed == 1
    assert stats.by_entity_type == {"asset": 2, "task": 1}
    assert stats.oldest_pending is not None


@pytest.mark.asyncio
async def test_get_queue_stats_empty(queue, client):
    stats = await queue.get_queue_stats(client.id)

    assert stats.pending == 0
    assert stats.by_entity_type == {}
    assert stats.oldest_pending is None


@pytest.mark.asyncio
async def test_cleanup_deletes_only_old_completed_items(queue, db_session, client, make_queue_item):
    old = datetime.now(timezone.utc) - timedelta(days=40)
    recent = datetime.now(timezone.utc) - timedelta(days=2)
    await make_queue_item(client, status=SyncStatus.COMPLETED.value, processed_at=old)
    keep_recent = await make_queue_item(client, status=SyncStatus.COMPLETED.value, processed_at=recent)
    keep_failed = await make_queue_item(client, status=SyncStatus.FAILED.value, processed_at=old)

    deleted = await queue.cleanup(30)

    assert deleted == 1
    remaining = (await db_session.execute(select(SyncQueueItem.id))).scalars().all()
    assert sorted(remaining) == sorted([keep_recent.id, keep_failed.id])
