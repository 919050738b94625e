"""
Scheduled housekeeping for the sync engine.

Runs inside the FastAPI application: a daily cleanup of completed sync queue
items and a periodic sweep that re-queues retryable failed items for every
active client.
"""

import logging
from datetime import datetime
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from assetsync.core.config import get_settings, get_sync_policy
from assetsync.database import async_session
from assetsync.services.background_sync_service import BackgroundSyncService
from assetsync.services.notification_service import NotificationService
from assetsync.services.sync_job_queue import DatabaseJobQueue

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def _build_service(db) -> BackgroundSyncService:
    return BackgroundSyncService(
        db,
        job_queue=DatabaseJobQueue(db),
        notifications=NotificationService(db),
        policy=get_sync_policy(),
    )


async def cleanup_sync_queue_task():
    """Delete completed sync queue items past the retention window"""
    try:
        async with async_session() as db:
            deleted = await _build_service(db).cleanup_sync_queue()
            await db.commit()
        logger.info(f"Scheduled sync queue cleanup removed {deleted} items")
    except Exception as e:
        logger.exception(f"Error in sync queue cleanup task: {str(e)}")


async def retry_failed_items_task():
    """Re-queue retryable failed items for all active clients"""
    try:
        async with async_session() as db:
            service = _build_service(db)
            clients = await service.get_active_clients()
            total = 0
            for client in clients:
                total += await service.retry_failed_items(client.id)
            await db.commit()
        logger.info(f"Retry sweep reset {total} items across {len(clients)} active clients")
    except Exception as e:
        logger.exception(f"Error in retry sweep task: {str(e)}")


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error(f"Job {event.job_id} crashed: {event.exception}")
    else:
        logger.info(f"Job {event.job_id} executed successfully at {datetime.now()}")


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the scheduler"""
    global scheduler

    if scheduler is not None:
        return scheduler

    settings = get_settings()
    scheduler = AsyncIOScheduler()
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        cleanup_sync_queue_task,
        CronTrigger.from_crontab(settings.CLEANUP_SCHEDULE),
        id="cleanup_sync_queue",
        name="Cleanup Sync Queue",
        replace_existing=True,
        max_instances=1,
    )
    logger.info(f"Sync queue cleanup scheduled: {settings.CLEANUP_SCHEDULE}")

    scheduler.add_job(
        retry_failed_items_task,
        IntervalTrigger(minutes=settings.RETRY_SCHEDULE_MINUTES),
        id="retry_failed_sync_items",
        name="Retry Failed Sync Items",
        replace_existing=True,
        max_instances=1,
        misfire_grace_time=300,
    )
    logger.info(f"Retry sweep scheduled every {settings.RETRY_SCHEDULE_MINUTES} minutes")

    return scheduler


async def start_scheduler():
    """Start the scheduler"""
    global scheduler

    if scheduler is None:
        scheduler = create_scheduler()

    if not scheduler.running:
        scheduler.start()
        logger.info("Scheduler started successfully")

        for job in scheduler.get_jobs():
            logger.info(f"  - {job.name}: {job.trigger}")


async def stop_scheduler():
    """Stop the scheduler gracefully"""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler stopped successfully")
    scheduler = None


async def get_scheduler_status():
    """Get current scheduler status and job information"""
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs_info = []
    for job in scheduler.get_jobs():
        jobs_info.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs_info
    }
