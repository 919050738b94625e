from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, Index
from sqlalchemy.sql import func

from assetsync.database import Base
from assetsync.core.enums import JobStatus


class Job(Base):
    """
    Generic background job record.
    """

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_status_priority", "status", "priority", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_type = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=JobStatus.QUEUED.value, index=True)  # queued, running, succeeded, failed
    priority = Column(Integer, nullable=False, default=0)
    payload = Column(JSON, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, type={self.job_type}, status={self.status})>"
