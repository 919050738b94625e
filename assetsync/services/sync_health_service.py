"""
Sync Health Service

Scores an organization's sync health from its pending backlog and the share
of queue items that ended FAILED.
"""

import logging
from typing import List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.config import SyncPolicy, get_sync_policy
from assetsync.core.enums import SyncStatus
from assetsync.models.sync_client import SyncClient
from assetsync.models.sync_queue import SyncQueueItem
from assetsync.models.user import User
from assetsync.schemas.sync import SyncHealth

logger = logging.getLogger(__name__)

HIGH_BACKLOG_RECOMMENDATION = "High sync backlog detected. Consider increasing sync frequency."
HIGH_FAILURE_RATE_RECOMMENDATION = "High failure rate. Check network connectivity and conflict resolution."
NO_ACTIVE_CLIENTS_RECOMMENDATION = "No active sync clients. Ensure PWA is properly configured."


def evaluate_health(
    active_clients: int,
    sync_backlog: int,
    failure_rate: float,
    policy: SyncPolicy,
) -> SyncHealth:
    """Turn raw counts into a 0-100 score and recommendations."""
    score = 100
    recommendations: List[str] = []

    if sync_backlog > policy.backlog_threshold:
        score -= policy.backlog_penalty
        recommendations.append(HIGH_BACKLOG_RECOMMENDATION)

    if failure_rate > policy.failure_rate_threshold:
        score -= round(failure_rate * policy.failure_penalty_weight)
        recommendations.append(HIGH_FAILURE_RATE_RECOMMENDATION)

    if active_clients == 0:
        recommendations.append(NO_ACTIVE_CLIENTS_RECOMMENDATION)

    return SyncHealth(
        health_score=max(0, min(100, score)),
        active_clients=active_clients,
        sync_backlog=sync_backlog,
        failure_rate=failure_rate,
        recommendations=recommendations,
    )


class SyncHealthService:

    def __init__(self, db: AsyncSession, policy: Optional[SyncPolicy] = None):
        self.db = db
        self.policy = policy or get_sync_policy()

    async def get_sync_health(self, organization_id: str) -> SyncHealth:
        org_client_ids = (
            select(SyncClient.id)
            .join(User, SyncClient.user_id == User.id)
            .where(User.organization_id == organization_id)
        )

        # Active clients and the pending depth of each
        backlog_stmt = (
            select(
                SyncClient.id,
                func.count(SyncQueueItem.id),
            )
            .join(User, SyncClient.user_id == User.id)
            .outerjoin(
                SyncQueueItem,
                (SyncQueueItem.client_id == SyncClient.id)
                & (SyncQueueItem.status == SyncStatus.PENDING.value),
            )
            .where(User.organization_id == organization_id, SyncClient.is_active.is_(True))
            .group_by(SyncClient.id)
        )
        backlog_rows = (await self.db.execute(backlog_stmt)).all()
        active_clients = len(backlog_rows)
        sync_backlog = sum(count for _, count in backlog_rows)

        # Total and failed counts in one read so they are consistent
        totals_stmt = select(
            func.count(SyncQueueItem.id),
            func.coalesce(
                func.sum(case((SyncQueueItem.status == SyncStatus.FAILED.value, 1), else_=0)),
                0,
            ),
        ).where(SyncQueueItem.client_id.in_(org_client_ids))
        total_items, failed_items = (await self.db.execute(totals_stmt)).one()

        failure_rate = (failed_items / total_items) if total_items else 0.0

        health = evaluate_health(active_clients, sync_backlog, failure_rate, self.policy)
        logger.debug(
            f"Sync health for organization {organization_id}: score={health.health_score}, "
            f"clients={active_clients}, backlog={sync_backlog}, failure_rate={failure_rate:.3f}"
        )
        return health
