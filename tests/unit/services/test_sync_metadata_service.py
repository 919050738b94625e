# tests/unit/services/test_sync_metadata_service.py

import pytest

from assetsync.core.checksum import entity_checksum
from assetsync.core.enums import SYSTEM_ACTOR
from assetsync.core.exceptions import ChecksumMismatchError, EntityNotFoundError, VersionConflictError
from assetsync.services.sync_metadata_service import SyncMetadataService, extract_actor_id


@pytest.fixture
def service(db_session):
    return SyncMetadataService(db_session)


"""
1. Actor extraction
"""

def test_extract_actor_prefers_updated_by():
    payload = {"userId": "u-3", "createdByUserId": "u-2", "updatedByUserId": "u-1"}
    assert extract_actor_id(payload) == "u-1"


def test_extract_actor_falls_back_in_order():
    assert extract_actor_id({"userId": "u-3", "createdByUserId": "u-2"}) == "u-2"
    assert extract_actor_id({"userId": "u-3"}) == "u-3"
    assert extract_actor_id({"updated_by_user_id": "u-9"}) == "u-9"


def test_extract_actor_none_when_absent():
    assert extract_actor_id({"name": "Pump"}) is None
    assert extract_actor_id({"userId": None}) is None
    assert extract_actor_id(None) is None
    assert extract_actor_id({"userId": ""}) is None


def test_extract_actor_accepts_numeric_ids():
    assert extract_actor_id({"updatedByUserId": 42}) == "42"
    assert extract_actor_id({"createdByUserId": None, "userId": 7}) == "7"


@pytest.mark.asyncio
async def test_numeric_actor_is_recorded(service):
    await service.create_sync_metadata("asset", "a-1", {"createdByUserId": 42})

    row = await service.get_sync_metadata("asset", "a-1")
    assert row.last_modified_by == "42"


"""
2. Create / update / delete
"""

@pytest.mark.asyncio
async def test_create_starts_at_version_one(service):
    payload = {"name": "Pump", "createdByUserId": "u-1"}

    version = await service.create_sync_metadata("asset", "a-1", payload)

    assert version == 1
    row = await service.get_sync_metadata("asset", "a-1")
    assert row.version == 1
    assert row.last_modified_by == "u-1"
    assert row.checksum == entity_checksum("asset", "a-1", payload)
    assert row.deleted_at is None


@pytest.mark.asyncio
async def test_create_without_actor_uses_system(service):
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump"})

    row = await service.get_sync_metadata("asset", "a-1")
    assert row.last_modified_by == SYSTEM_ACTOR


@pytest.mark.asyncio
async def test_create_on_tracked_entity_increments_instead_of_resetting(service):
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump"})
    await service.update_sync_metadata("asset", "a-1", {"name": "Pump 2"})

    version = await service.create_sync_metadata("asset", "a-1", {"name": "Pump 3"})

    assert version == 3


@pytest.mark.asyncio
async def test_update_untracked_entity_falls_back_to_create(service):
    version = await service.update_sync_metadata("task", "t-1", {"title": "Inspect"})

    assert version == 1


@pytest.mark.asyncio
async def test_update_increments_and_recomputes_checksum(service):
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump"})
    before = await service.get_sync_metadata("asset", "a-1")
    old_checksum = before.checksum

    version = await service.update_sync_metadata("asset", "a-1", {"name": "Pump v2"}, client_id=None)

    after = await service.get_sync_metadata("asset", "a-1")
    assert version == 2
    assert after.version == 2
    assert after.checksum == entity_checksum("asset", "a-1", {"name": "Pump v2"})
    assert after.checksum != old_checksum


@pytest.mark.asyncio
async def test_update_without_actor_preserves_last_modified_by(service):
    await service.create_sync_metadata("asset", "a-1", {"createdByUserId": "u-1"})

    await service.update_sync_metadata("asset", "a-1", {"status": "DOWN"})
    row = await service.get_sync_metadata("asset", "a-1")
    assert row.last_modified_by == "u-1"

    await service.update_sync_metadata("asset", "a-1", {"updatedByUserId": "u-2"})
    row = await service.get_sync_metadata("asset", "a-1")
    assert row.last_modified_by == "u-2"


@pytest.mark.asyncio
async def test_mark_deleted_increments_and_keeps_checksum(service):
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump", "userId": "u-1"})
    before = await service.get_sync_metadata("asset", "a-1")
    checksum = before.checksum

    version = await service.mark_deleted("asset", "a-1")

    row = await service.get_sync_metadata("asset", "a-1")
    assert version == 2
    assert row.deleted_at is not None
    assert row.is_deleted
    assert row.checksum == checksum
    assert row.last_modified_by == "u-1"


@pytest.mark.asyncio
async def test_mark_deleted_records_deleting_client(service, make_user, make_client):
    user = await make_user()
    author = await make_client(user, device_id="phone")
    deleter = await make_client(user, device_id="tablet")
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump"}, client_id=author.id)

    await service.mark_deleted("asset", "a-1", client_id=deleter.id)

    row = await service.get_sync_metadata("asset", "a-1")
    assert row.client_id == deleter.id


@pytest.mark.asyncio
async def test_mark_deleted_without_client_is_a_server_change(service, make_user, make_client):
    author = await make_client(await make_user())
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump"}, client_id=author.id)

    await service.mark_deleted("asset", "a-1")

    row = await service.get_sync_metadata("asset", "a-1")
    assert row.client_id is None


@pytest.mark.asyncio
async def test_mark_deleted_untracked_is_noop(service):
    assert await service.mark_deleted("asset", "missing") is None
    assert await service.get_sync_metadata("asset", "missing") is None


@pytest.mark.asyncio
async def test_update_after_delete_clears_soft_delete(service):
    await service.create_sync_metadata("asset", "a-1", {"name": "Pump"})
    await service.mark_deleted("asset", "a-1")

    version = await service.update_sync_metadata("asset", "a-1", {"name": "Pump revived"})

    row = await service.get_sync_metadata("asset", "a-1")
    assert version == 3
    assert row.deleted_at is None


@pytest.mark.asyncio
async def test_version_counts_every_tracked_mutation(service):
    await service.create_sync_metadata("asset", "a-1", {})
    for i in range(4):
        await service.update_sync_metadata("asset", "a-1", {"n": i})
    await service.mark_deleted("asset", "a-1")
    await service.update_sync_metadata("asset", "a-1", {"n": "back"})

    row = await service.get_sync_metadata("asset", "a-1")
    assert row.version == 7


"""
3. Compare-and-swap
"""

@pytest.mark.asyncio
async def test_compare_and_increment_succeeds_on_matching_version(service):
    await service.create_sync_metadata("asset", "a-1", {})

    version = await service.compare_and_increment("asset", "a-1", 1, {"name": "x"})

    assert version == 2


@pytest.mark.asyncio
async def test_compare_and_increment_rejects_stale_version(service):
    await service.create_sync_metadata("asset", "a-1", {})
    await service.update_sync_metadata("asset", "a-1", {"name": "other writer"})

    with pytest.raises(VersionConflictError) as exc_info:
        await service.compare_and_increment("asset", "a-1", 1, {"name": "stale"})

    assert exc_info.value.expected_version == 1
    assert exc_info.value.actual_version == 2
    row = await service.get_sync_metadata("asset", "a-1")
    assert row.version == 2


@pytest.mark.asyncio
async def test_compare_and_increment_untracked_raises_not_found(service):
    with pytest.raises(EntityNotFoundError):
        await service.compare_and_increment("asset", "missing", 1)


"""
4. Query API
"""

@pytest.mark.asyncio
async def test_list_sync_metadata_filters(service):
    await service.create_sync_metadata("asset", "a-1", {})
    await service.create_sync_metadata("asset", "a-2", {})
    await service.create_sync_metadata("task", "t-1", {})
    await service.mark_deleted("asset", "a-2")

    assets = await service.list_sync_metadata("asset")
    live_assets = await service.list_sync_metadata("asset", include_deleted=False)
    everything = await service.list_sync_metadata()

    assert {row.entity_id for row in assets} == {"a-1", "a-2"}
    assert [row.entity_id for row in live_assets] == ["a-1"]
    assert len(everything) == 3


@pytest.mark.asyncio
async def test_detect_conflict(service):
    await service.create_sync_metadata("asset", "a-1", {})
    await service.update_sync_metadata("asset", "a-1", {"x": 1})

    assert await service.detect_conflict("asset", "a-1", 2) is None
    assert await service.detect_conflict("asset", "untracked", 1) is None

    conflict = await service.detect_conflict("asset", "a-1", 1)
    assert conflict.client_version == 1
    assert conflict.server_version == 2


@pytest.mark.asyncio
async def test_verify_checksum_against_stored_value(service):
    payload = {"name": "Pump"}
    await service.create_sync_metadata("asset", "a-1", payload)

    assert await service.verify_checksum("asset", "a-1", payload) == entity_checksum("asset", "a-1", payload)

    with pytest.raises(ChecksumMismatchError):
        await service.verify_checksum("asset", "a-1", {"name": "Tampered"})


@pytest.mark.asyncio
async def test_verify_checksum_against_explicit_value(service):
    payload = {"name": "Pump"}
    expected = entity_checksum("asset", "a-1", payload)

    assert await service.verify_checksum("asset", "a-1", payload, expected=expected) == expected

    with pytest.raises(ChecksumMismatchError):
        await service.verify_checksum("asset", "a-1", payload, expected="0" * 64)
