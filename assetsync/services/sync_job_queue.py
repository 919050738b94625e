"""Helpers for enqueuing and consuming sync jobs."""

import logging
from typing import Any, Dict, Iterable, Optional, Protocol

from pydantic import TypeAdapter
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.enums import JobStatus, SyncJobType
from assetsync.models.job import Job
from assetsync.schemas.sync import SyncJob, SyncJobBase

logger = logging.getLogger(__name__)

SYNC_JOB_TYPES = tuple(t.value for t in SyncJobType)

_sync_job_adapter = TypeAdapter(SyncJob)


class JobQueue(Protocol):
    """Fire-and-forget job submission with at-least-once delivery."""

    async def enqueue(self, job: SyncJobBase) -> Any: ...


class DatabaseJobQueue:
    """JobQueue backed by the ``jobs`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def enqueue(self, job: SyncJobBase) -> Job:
        record = await enqueue_job(
            self.db,
            job_type=job.type,
            payload=job.to_payload(),
            priority=job.queue_priority,
        )
        logger.debug(f"Queued {job.type} job {record.id} for client {job.client_id} ({len(job.item_ids)} items)")
        return record


async def enqueue_job(
    db: AsyncSession,
    *,
    job_type: str,
    payload: Dict[str, Any],
    priority: int = 0,
) -> Job:
    """Create a queued job for a given type/payload."""
    job = Job(
        job_type=job_type,
        payload=payload,
        priority=priority,
        status=JobStatus.QUEUED.value,
    )
    db.add(job)
    await db.flush()
    await db.refresh(job)
    return job


async def fetch_next_queued_job(
    db: AsyncSession,
    job_types: Optional[Iterable[str]] = SYNC_JOB_TYPES,
) -> Optional[Job]:
    """Fetch the highest-priority, oldest queued job (SKIP LOCKED to avoid contention)."""
    stmt = select(Job).where(Job.status == JobStatus.QUEUED.value)
    if job_types is not None:
        stmt = stmt.where(Job.job_type.in_(list(job_types)))
    stmt = (
        stmt.order_by(Job.priority.desc(), Job.created_at.asc(), Job.id.asc())
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def mark_job_running(db: AsyncSession, job: Job) -> None:
    job.status = JobStatus.RUNNING.value
    job.attempts = (job.attempts or 0) + 1
    await db.flush()


async def mark_job_succeeded(db: AsyncSession, job: Job) -> None:
    job.status = JobStatus.SUCCEEDED.value
    job.message = None
    await db.flush()


async def mark_job_failed(db: AsyncSession, job: Job, error_message: str) -> None:
    job.status = JobStatus.FAILED.value
    job.message = error_message[:2000]
    await db.flush()


async def peek_queue_count(db: AsyncSession, job_types: Optional[Iterable[str]] = SYNC_JOB_TYPES) -> int:
    """Check how many jobs are still queued (without locking)."""
    stmt = select(func.count(Job.id)).where(Job.status == JobStatus.QUEUED.value)
    if job_types is not None:
        stmt = stmt.where(Job.job_type.in_(list(job_types)))
    result = await db.execute(stmt)
    return result.scalar() or 0


def parse_sync_job(job: Job) -> SyncJobBase:
    """Rebuild the typed descriptor stored in a job row."""
    payload = dict(job.payload or {})
    payload.setdefault("type", job.job_type)
    return _sync_job_adapter.validate_python(payload)
