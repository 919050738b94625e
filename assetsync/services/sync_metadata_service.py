"""
Sync Metadata Service

Owns the ``sync_metadata`` table: version counters, checksums, soft-delete
markers and the last modifier for every tracked entity. Every write here is a
single statement so concurrent writers on the same entity cannot lose an
increment.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.checksum import entity_checksum
from assetsync.core.enums import SYSTEM_ACTOR
from assetsync.core.exceptions import ChecksumMismatchError, EntityNotFoundError, VersionConflictError
from assetsync.models.sync_metadata import SyncMetadata
from assetsync.schemas.sync import SyncConflict

logger = logging.getLogger(__name__)

# Payload keys that identify the acting user, in priority order
ACTOR_FIELDS = (
    ("updatedByUserId", "updated_by_user_id"),
    ("createdByUserId", "created_by_user_id"),
    ("userId", "user_id"),
)


def extract_actor_id(payload: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return the first user id found in ``payload`` as a string, or None."""
    if not payload:
        return None
    for aliases in ACTOR_FIELDS:
        for key in aliases:
            value = payload.get(key)
            if value is None or isinstance(value, (bool, dict, list, tuple, set)):
                continue
            value = str(value)
            if value:
                return value
    return None


class SyncMetadataService:
    """Metadata store and metadata query API."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._table = SyncMetadata.__table__

    # ------------------------------------------------------------------
    # Writes (called only by the mutation interception layer)
    # ------------------------------------------------------------------
    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(self._table)
        if dialect == "sqlite":
            return sqlite_insert(self._table)
        raise NotImplementedError(f"Atomic metadata upsert is not supported on '{dialect}'")

    async def _upsert(
        self,
        entity_type: str,
        entity_id: str,
        payload: Optional[Dict[str, Any]],
        client_id: Optional[str],
    ) -> int:
        actor = extract_actor_id(payload)
        now = datetime.now(timezone.utc)
        table = self._table

        stmt = self._insert().values(
            id=str(uuid.uuid4()),
            entity_type=entity_type,
            entity_id=entity_id,
            version=1,
            last_modified_by=actor or SYSTEM_ACTOR,
            last_modified_at=now,
            checksum=entity_checksum(entity_type, entity_id, payload or {}),
            deleted_at=None,
            client_id=client_id,
        )

        # An existing row means this is an update: bump the version in place
        set_ = {
            "version": table.c.version + 1,
            "checksum": stmt.excluded.checksum,
            "last_modified_at": stmt.excluded.last_modified_at,
            "deleted_at": None,
            "client_id": stmt.excluded.client_id,
        }
        if actor:
            set_["last_modified_by"] = stmt.excluded.last_modified_by

        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.entity_type, table.c.entity_id],
            set_=set_,
        ).returning(table.c.version)

        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def create_sync_metadata(
        self,
        entity_type: str,
        entity_id: str,
        payload: Optional[Dict[str, Any]] = None,
        client_id: Optional[str] = None,
    ) -> int:
        """
        Start tracking a new entity at version 1.

        If metadata already exists (an upsert racing an earlier create, for
        example) the row is updated instead and its version incremented.
        """
        version = await self._upsert(entity_type, str(entity_id), payload, client_id)
        logger.debug(f"Sync metadata created: {entity_type} {entity_id} v{version}")
        return version

    async def update_sync_metadata(
        self,
        entity_type: str,
        entity_id: str,
        payload: Optional[Dict[str, Any]] = None,
        client_id: Optional[str] = None,
    ) -> int:
        """
        Record an update: version + 1, fresh checksum and timestamp, soft-delete
        marker cleared. The last modifier only changes when the payload names
        one. Untracked entities start at version 1.
        """
        version = await self._upsert(entity_type, str(entity_id), payload, client_id)
        logger.debug(f"Sync metadata updated: {entity_type} {entity_id} v{version}")
        return version

    async def mark_deleted(
        self,
        entity_type: str,
        entity_id: str,
        client_id: Optional[str] = None,
    ) -> Optional[int]:
        """
        Soft-delete tracked metadata. Returns the new version, or None if untracked.

        The deleting client becomes the author of the change; checksum and
        last modifier are left as they were.
        """
        table = self._table
        now = datetime.now(timezone.utc)
        stmt = (
            update(table)
            .where(table.c.entity_type == entity_type, table.c.entity_id == str(entity_id))
            .values(
                version=table.c.version + 1,
                deleted_at=now,
                last_modified_at=now,
                client_id=client_id,
            )
            .returning(table.c.version)
        )
        result = await self.db.execute(stmt)
        version = result.scalar_one_or_none()
        if version is None:
            logger.debug(f"No sync metadata to mark deleted for {entity_type} {entity_id}")
        return version

    async def compare_and_increment(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int,
        payload: Optional[Dict[str, Any]] = None,
        client_id: Optional[str] = None,
    ) -> int:
        """
        Increment the version only if it still equals ``expected_version``.

        Raises VersionConflictError when another writer got there first and
        EntityNotFoundError when the entity is not tracked at all.
        """
        table = self._table
        actor = extract_actor_id(payload)
        values = {
            "version": table.c.version + 1,
            "checksum": entity_checksum(entity_type, str(entity_id), payload or {}),
            "last_modified_at": datetime.now(timezone.utc),
            "deleted_at": None,
            "client_id": client_id,
        }
        if actor:
            values["last_modified_by"] = actor

        stmt = (
            update(table)
            .where(
                table.c.entity_type == entity_type,
                table.c.entity_id == str(entity_id),
                table.c.version == expected_version,
            )
            .values(**values)
            .returning(table.c.version)
        )
        result = await self.db.execute(stmt)
        version = result.scalar_one_or_none()
        if version is not None:
            return version

        current = await self.get_sync_metadata(entity_type, entity_id)
        if current is None:
            raise EntityNotFoundError(f"No sync metadata for {entity_type} {entity_id}")
        raise VersionConflictError(
            expected_version=expected_version,
            actual_version=current.version,
        )

    # ------------------------------------------------------------------
    # Metadata query API
    # ------------------------------------------------------------------
    async def get_sync_metadata(self, entity_type: str, entity_id: str) -> Optional[SyncMetadata]:
        stmt = (
            select(SyncMetadata)
            .where(
                SyncMetadata.entity_type == entity_type,
                SyncMetadata.entity_id == str(entity_id),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_sync_metadata(
        self,
        entity_type: Optional[str] = None,
        include_deleted: bool = True,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SyncMetadata]:
        stmt = select(SyncMetadata).execution_options(populate_existing=True)
        if entity_type:
            stmt = stmt.where(SyncMetadata.entity_type == entity_type)
        if not include_deleted:
            stmt = stmt.where(SyncMetadata.deleted_at.is_(None))
        stmt = stmt.order_by(SyncMetadata.last_modified_at.asc()).offset(offset).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def detect_conflict(
        self,
        entity_type: str,
        entity_id: str,
        client_version: int,
    ) -> Optional[SyncConflict]:
        """A conflict exists when the server has tracked a different version."""
        metadata = await self.get_sync_metadata(entity_type, entity_id)
        if metadata is None or metadata.version == client_version:
            return None
        return SyncConflict(
            entity_type=entity_type,
            entity_id=str(entity_id),
            client_version=client_version,
            server_version=metadata.version,
        )

    async def verify_checksum(
        self,
        entity_type: str,
        entity_id: str,
        payload: Dict[str, Any],
        expected: Optional[str] = None,
    ) -> str:
        """
        Check ``payload`` against ``expected`` (or the stored checksum).

        Returns the computed checksum; raises ChecksumMismatchError on mismatch.
        """
        computed = entity_checksum(entity_type, str(entity_id), payload or {})
        if expected is None:
            metadata = await self.get_sync_metadata(entity_type, entity_id)
            if metadata is None:
                raise EntityNotFoundError(f"No sync metadata for {entity_type} {entity_id}")
            expected = metadata.checksum
        if computed != expected:
            raise ChecksumMismatchError(
                f"Checksum mismatch for {entity_type} {entity_id}"
            )
        return computed
