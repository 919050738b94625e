# assetsync/cli/sync_admin.py
"""Operator commands for the sync queue."""

import asyncio
import json

import click

from assetsync.core.config import get_sync_policy
from assetsync.core.exceptions import SyncServiceError
from assetsync.core.logging_config import configure_logging
from assetsync.database import async_session
from assetsync.services.background_sync_service import BackgroundSyncService
from assetsync.services.notification_service import NotificationService
from assetsync.services.sync_health_service import SyncHealthService
from assetsync.services.sync_job_queue import DatabaseJobQueue


def _background_service(session) -> BackgroundSyncService:
    return BackgroundSyncService(
        session,
        job_queue=DatabaseJobQueue(session),
        notifications=NotificationService(session),
        policy=get_sync_policy(),
    )


@click.command("cleanup-queue")
@click.option("--days", type=int, default=None, help="Days of completed items to keep (default from settings)")
def cleanup_queue(days):
    """Delete completed sync queue items older than the retention window"""
    configure_logging()

    async def _cleanup():
        async with async_session() as session:
            deleted = await _background_service(session).cleanup_sync_queue(days)
            await session.commit()
        click.echo(f"Deleted {deleted} completed sync queue items")

    asyncio.run(_cleanup())


@click.command("retry-failed")
@click.argument("client_id")
@click.option("--max-retries", type=int, default=None, help="Only retry items below this retry count")
def retry_failed(client_id, max_retries):
    """Reset a client's failed sync items to pending and queue a retry job"""
    configure_logging()

    async def _retry():
        async with async_session() as session:
            count = await _background_service(session).retry_failed_items(client_id, max_retries)
            await session.commit()
        if count:
            click.echo(f"Queued {count} items for retry")
        else:
            click.echo("No failed items eligible for retry")

    asyncio.run(_retry())


@click.command("queue-stats")
@click.argument("client_id")
def queue_stats(client_id):
    """Show sync queue counts for a client"""

    async def _stats():
        async with async_session() as session:
            stats = await _background_service(session).get_sync_queue_stats(client_id)
        click.echo(json.dumps(stats.to_payload(), indent=2))

    try:
        asyncio.run(_stats())
    except SyncServiceError as e:
        raise click.ClickException(str(e))


@click.command("sync-health")
@click.argument("organization_id")
def sync_health(organization_id):
    """Show the sync health score for an organization"""

    async def _health():
        async with async_session() as session:
            health = await SyncHealthService(session, policy=get_sync_policy()).get_sync_health(organization_id)

        click.echo(f"Health score:   {health.health_score}")
        click.echo(f"Active clients: {health.active_clients}")
        click.echo(f"Sync backlog:   {health.sync_backlog}")
        click.echo(f"Failure rate:   {health.failure_rate:.1%}")
        for recommendation in health.recommendations:
            click.echo(f"  - {recommendation}")

    asyncio.run(_health())
