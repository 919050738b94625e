# assetsync/models/sync_client.py
import uuid

from sqlalchemy import Boolean, Column, String, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from assetsync.database import Base


class SyncClient(Base):
    """
    A registered device/session that pushes and pulls entity changes.

    ``sync_token`` holds client-specific sync state as a JSON object; its
    known sections are described by ``assetsync.schemas.sync.SyncTokenState``.
    """
    __tablename__ = "sync_clients"
    __table_args__ = (
        UniqueConstraint("user_id", "device_id", name="uq_sync_clients_user_device"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_id = Column(String(255), nullable=False)
    device_name = Column(String(255), nullable=True)

    sync_token = Column(JSON, nullable=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    user = relationship("User", back_populates="sync_clients")
    queue_items = relationship("SyncQueueItem", back_populates="client", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<SyncClient(id={self.id}, user_id={self.user_id}, device_id='{self.device_id}')>"
