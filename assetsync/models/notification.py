# assetsync/models/notification.py
import uuid

from sqlalchemy import Column, String, DateTime, JSON, Text
from sqlalchemy.sql import func

from assetsync.database import Base


class Notification(Base):
    """In-app notification addressed to a single user."""
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    organization_id = Column(String(36), nullable=True, index=True)

    type = Column(String(50), nullable=False, index=True)  # e.g. 'sync_failed'
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    metadata_json = Column("metadata", JSON, nullable=True)

    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type}')>"
