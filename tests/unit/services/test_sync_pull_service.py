# tests/unit/services/test_sync_pull_service.py
import pytest
from datetime import datetime, timedelta, timezone

from assetsync.core.enums import SyncOperation
from assetsync.core.exceptions import SyncValidationError
from assetsync.repositories import build_default_registry
from assetsync.services.sync_metadata_service import SyncMetadataService
from assetsync.services.sync_pull_service import SyncPullService
from assetsync.services.sync_tracking import SyncTrackingStore


@pytest.fixture
def registry(db_session):
    return build_default_registry(db_session)


@pytest.fixture
def store(db_session, registry):
    return SyncTrackingStore(registry, SyncMetadataService(db_session), ("asset", "task", "schedule", "location"))


@pytest.fixture
def pull(db_session, registry):
    return SyncPullService(db_session, registry)


@pytest.mark.asyncio
async def test_delta_changes_report_updates_and_deletes(store, pull):
    pump = await store.create("asset", {"name": "Pump", "organization_id": "org-1"})
    valve = await store.create("asset", {"name": "Valve", "organization_id": "org-1"})
    await store.update("asset", {"id": pump.id}, {"status": "DOWN"})
    await store.delete("asset", {"id": valve.id})

    page = await pull.get_delta_changes(client_id=None)

    changes = {change.entity_id: change for change in page.changes}
    assert changes[pump.id].operation == SyncOperation.UPDATE
    assert changes[pump.id].version == 2
    assert changes[pump.id].payload["status"] == "DOWN"
    assert changes[valve.id].operation == SyncOperation.DELETE
    assert changes[valve.id].version == 2
    assert changes[valve.id].payload == {}
    assert page.has_more is False
    assert page.next_page_token is None


@pytest.mark.asyncio
async def test_delta_changes_skip_own_client_changes(store, pull, make_user, make_client):
    user = await make_user()
    phone = await make_client(user, device_id="phone")
    mine = await store.create("asset", {"name": "Mine", "organization_id": "org-1"}, client_id=phone.id)
    server = await store.create("asset", {"name": "Server", "organization_id": "org-1"})

    page = await pull.get_delta_changes(client_id=phone.id)

    ids = [change.entity_id for change in page.changes]
    assert server.id in ids
    assert mine.id not in ids


@pytest.mark.asyncio
async def test_delta_changes_filter_by_type_and_since(store, pull):
    await store.create("asset", {"name": "Pump", "organization_id": "org-1"})
    task = await store.create("task", {"title": "Inspect", "organization_id": "org-1"})

    page = await pull.get_delta_changes(client_id=None, entity_types=["task"])
    assert [change.entity_id for change in page.changes] == [task.id]

    future = datetime.now(timezone.utc) + timedelta(days=1)
    assert (await pull.get_delta_changes(client_id=None, since=future)).changes == []


@pytest.mark.asyncio
async def test_delta_changes_paginate(store, pull):
    for i in range(5):
        await store.create("location", {"name": f"Bay {i}", "organization_id": "org-1"})

    first = await pull.get_delta_changes(client_id=None, page_size=2)
    second = await pull.get_delta_changes(client_id=None, page_size=2, page_token=first.next_page_token)
    third = await pull.get_delta_changes(client_id=None, page_size=2, page_token=second.next_page_token)

    assert first.has_more and second.has_more and not third.has_more
    assert len(first.changes) == 2 and len(second.changes) == 2 and len(third.changes) == 1
    seen = [c.entity_id for page in (first, second, third) for c in page.changes]
    assert len(set(seen)) == 5


@pytest.mark.asyncio
async def test_delta_changes_scoped_to_organization(store, pull):
    ours = await store.create("asset", {"name": "Ours", "organization_id": "org-1"})
    await store.create("asset", {"name": "Theirs", "organization_id": "org-2"})

    page = await pull.get_delta_changes(client_id=None, organization_id="org-1")

    assert [change.entity_id for change in page.changes] == [ours.id]


@pytest.mark.asyncio
async def test_invalid_page_token(pull):
    with pytest.raises(SyncValidationError):
        await pull.get_delta_changes(client_id=None, page_token="not-a-number")


@pytest.mark.asyncio
async def test_author_sees_delete_made_by_another_client(store, pull, make_user, make_client):
    user = await make_user()
    phone = await make_client(user, device_id="phone")
    tablet = await make_client(user, device_id="tablet")
    pump = await store.create("asset", {"name": "Pump", "organization_id": "org-1"}, client_id=phone.id)

    await store.delete("asset", {"id": pump.id}, client_id=tablet.id)

    seen_by_phone = await pull.get_delta_changes(client_id=phone.id)
    assert [(c.entity_id, c.operation) for c in seen_by_phone.changes] == [(pump.id, SyncOperation.DELETE)]
    assert (await pull.get_delta_changes(client_id=tablet.id)).changes == []


@pytest.mark.asyncio
async def test_author_sees_server_side_delete(store, pull, make_user, make_client):
    phone = await make_client(await make_user(), device_id="phone")
    pump = await store.create("asset", {"name": "Pump", "organization_id": "org-1"}, client_id=phone.id)

    await store.delete("asset", {"id": pump.id})

    page = await pull.get_delta_changes(client_id=phone.id)
    assert [(c.entity_id, c.operation) for c in page.changes] == [(pump.id, SyncOperation.DELETE)]
