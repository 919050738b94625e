# assetsync/models/sync_metadata.py
import uuid

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func

from assetsync.database import Base


class SyncMetadata(Base):
    """
    Version and integrity bookkeeping for one syncable entity.

    One row per (entity_type, entity_id). ``version`` counts the tracked
    mutations applied since creation; ``deleted_at`` is a soft-delete marker
    cleared again if the entity is updated after deletion.
    """
    __tablename__ = "sync_metadata"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_sync_metadata_entity"),
        Index("ix_sync_metadata_type_modified", "entity_type", "last_modified_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(100), nullable=False)

    version = Column(Integer, nullable=False, default=1)
    last_modified_by = Column(String(100), nullable=False)
    last_modified_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    checksum = Column(String(64), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    # Device that authored the latest change; null for server-originated changes
    client_id = Column(String(36), ForeignKey("sync_clients.id", ondelete="SET NULL"), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        return (f"<SyncMetadata(type='{self.entity_type}', id='{self.entity_id}', "
                f"version={self.version}, deleted={self.is_deleted})>")
