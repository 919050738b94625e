# assetsync/models/entities.py
"""
Syncable domain entities.

Only the columns the sync engine reads are modelled here: the identifier,
the owning organization (tenant checks on pulls) and the actor columns that
feed ``last_modified_by`` on the metadata row.
"""
import uuid

from sqlalchemy import Boolean, Column, String, DateTime, Text, JSON
from sqlalchemy.sql import func

from assetsync.database import Base


class SyncableEntityMixin:
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    created_by_user_id = Column(String(36), nullable=True)
    updated_by_user_id = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class Location(SyncableEntityMixin, Base):
    __tablename__ = "locations"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    parent_id = Column(String(36), nullable=True, index=True)


class Asset(SyncableEntityMixin, Base):
    __tablename__ = "assets"

    name = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default="OPERATIONAL")
    location_id = Column(String(36), nullable=True, index=True)
    serial_number = Column(String(255), nullable=True)
    custom_fields = Column(JSON, nullable=True)


class Task(SyncableEntityMixin, Base):
    __tablename__ = "tasks"

    title = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default="PLANNED")
    priority = Column(String(16), nullable=False, default="MEDIUM")
    asset_id = Column(String(36), nullable=True, index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)


class Schedule(SyncableEntityMixin, Base):
    __tablename__ = "schedules"

    name = Column(String(255), nullable=False)
    asset_id = Column(String(36), nullable=True, index=True)
    recurrence_rule = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
