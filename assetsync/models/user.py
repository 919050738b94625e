# assetsync/models/user.py
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from assetsync.database import Base


class User(Base):
    """
    Minimal user record: the sync engine only needs the owning organization
    of a client's user for tenant checks and notification routing.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    email = Column(String(255), nullable=True, unique=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sync_clients = relationship("SyncClient", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, organization_id={self.organization_id})>"
