# assetsync/models/sync_queue.py
import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from assetsync.database import Base
from assetsync.core.enums import SyncStatus


class SyncQueueItem(Base):
    """
    One pending change destined for, or originating from, a sync client.

    Status moves PENDING -> COMPLETED on success, stays PENDING with an
    incremented retry_count on a recoverable failure, and ends FAILED when
    retries are exhausted or the item is abandoned.
    """
    __tablename__ = "sync_queue"
    __table_args__ = (
        Index("ix_sync_queue_client_status", "client_id", "status"),
        Index("ix_sync_queue_entity", "entity_type", "entity_id"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id = Column(String(36), ForeignKey("sync_clients.id", ondelete="CASCADE"), nullable=False)

    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(100), nullable=True)
    operation = Column(String(16), nullable=False)  # CREATE, UPDATE, DELETE
    status = Column(String(16), nullable=False, default=SyncStatus.PENDING.value)

    payload = Column(JSON, nullable=False, default=dict)
    client_version = Column(Integer, nullable=True)
    retry_count = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    client = relationship("SyncClient", back_populates="queue_items")

    def __repr__(self):
        return (f"<SyncQueueItem(id={self.id}, client_id={self.client_id}, "
                f"{self.operation} {self.entity_type}, status='{self.status}', retries={self.retry_count})>")
