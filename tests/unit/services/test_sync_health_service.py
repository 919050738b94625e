# tests/unit/services/test_sync_health_service.py
import pytest

from assetsync.core.config import SyncPolicy
from assetsync.core.enums import SyncStatus
from assetsync.services.sync_health_service import (
    HIGH_BACKLOG_RECOMMENDATION,
    HIGH_FAILURE_RATE_RECOMMENDATION,
    NO_ACTIVE_CLIENTS_RECOMMENDATION,
    SyncHealthService,
    evaluate_health,
)


"""
1. Scoring rules
"""

def test_healthy_organization_scores_100():
    health = evaluate_health(active_clients=2, sync_backlog=10, failure_rate=0.05, policy=SyncPolicy())

    assert health.health_score == 100
    assert health.recommendations == []


def test_high_backlog_penalty():
    health = evaluate_health(active_clients=3, sync_backlog=75, failure_rate=0.1, policy=SyncPolicy())

    assert health.health_score == 80
    assert health.recommendations == [HIGH_BACKLOG_RECOMMENDATION]


def test_backlog_at_threshold_is_not_penalized():
    health = evaluate_health(active_clients=1, sync_backlog=50, failure_rate=0.0, policy=SyncPolicy())

    assert health.health_score == 100


def test_failure_rate_penalty_is_proportional():
    health = evaluate_health(active_clients=1, sync_backlog=0, failure_rate=0.3, policy=SyncPolicy())

    assert health.health_score == 70
    assert health.recommendations == [HIGH_FAILURE_RATE_RECOMMENDATION]


def test_score_never_below_zero():
    health = evaluate_health(active_clients=1, sync_backlog=1000, failure_rate=0.5, policy=SyncPolicy())
    assert 0 <= health.health_score <= 100

    worst = evaluate_health(active_clients=0, sync_backlog=10_000, failure_rate=1.0, policy=SyncPolicy())
    assert worst.health_score == 0


def test_no_active_clients_recommendation():
    health = evaluate_health(active_clients=0, sync_backlog=0, failure_rate=0.0, policy=SyncPolicy())

    assert health.health_score == 100
    assert health.recommendations == [NO_ACTIVE_CLIENTS_RECOMMENDATION]


def test_thresholds_come_from_policy():
    policy = SyncPolicy(backlog_threshold=5, backlog_penalty=40)

    health = evaluate_health(active_clients=1, sync_backlog=6, failure_rate=0.0, policy=policy)

    assert health.health_score == 60


"""
2. Aggregation from the store
"""

@pytest.mark.asyncio
async def test_get_sync_health_aggregates_organization(db_session, make_user, make_client, make_queue_item):
    user = await make_user(organization_id="org-1")
    active = await make_client(user, device_id="phone")
    inactive = await make_client(user, device_id="old-tablet", is_active=False)
    outsider = await make_client(await make_user(organization_id="org-2"), device_id="other")

    for _ in range(3):
        await make_queue_item(active)
    await make_queue_item(active, status=SyncStatus.FAILED.value)
    await make_queue_item(inactive)
    await make_queue_item(inactive, status=SyncStatus.FAILED.value)
    await make_queue_item(outsider, status=SyncStatus.FAILED.value)

    health = await SyncHealthService(db_session, policy=SyncPolicy()).get_sync_health("org-1")

    assert health.active_clients == 1
    assert health.sync_backlog == 3
    # 2 failed out of 6 items across all of org-1's clients
    assert health.failure_rate == pytest.approx(2 / 6)
    assert health.health_score == 67
    assert health.recommendations == [HIGH_FAILURE_RATE_RECOMMENDATION]


@pytest.mark.asyncio
async def test_get_sync_health_empty_organization(db_session):
    health = await SyncHealthService(db_session, policy=SyncPolicy()).get_sync_health("org-empty")

    assert health.active_clients == 0
    assert health.sync_backlog == 0
    assert health.failure_rate == 0
    assert health.health_score == 100
    assert health.recommendations == [NO_ACTIVE_CLIENTS_RECOMMENDATION]
