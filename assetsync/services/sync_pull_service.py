"""
Delta pull for sync clients.

Lists tracked changes a client has not authored itself since a point in
time, with the current entity state for live entities.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.enums import SyncOperation
from assetsync.core.exceptions import SyncValidationError
from assetsync.models.sync_metadata import SyncMetadata
from assetsync.repositories import RepositoryRegistry, entity_to_dict
from assetsync.schemas.sync import DeltaChangesPage, SyncChange

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000


def _decode_page_token(page_token: Optional[str]) -> int:
    if not page_token:
        return 0
    try:
        offset = int(page_token)
    except (TypeError, ValueError):
        raise SyncValidationError(f"Invalid page token: {page_token!r}")
    if offset < 0:
        raise SyncValidationError(f"Invalid page token: {page_token!r}")
    return offset


class SyncPullService:

    def __init__(self, db: AsyncSession, registry: RepositoryRegistry):
        self.db = db
        self.registry = registry

    def _organization_filter(self, organization_id: str, entity_types: Sequence[str]):
        """Restrict metadata to entities whose row belongs to the organization."""
        clauses = []
        for entity_type in entity_types:
            model = getattr(self.registry.get(entity_type), "model", None)
            if model is None or not hasattr(model, "organization_id"):
                continue
            owned_ids = select(model.id).where(model.organization_id == organization_id)
            clauses.append(
                and_(SyncMetadata.entity_type == entity_type, SyncMetadata.entity_id.in_(owned_ids))
            )
        return or_(*clauses) if clauses else None

    async def get_delta_changes(
        self,
        client_id: Optional[str],
        since: Optional[datetime] = None,
        entity_types: Optional[Sequence[str]] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        page_token: Optional[str] = None,
        organization_id: Optional[str] = None,
    ) -> DeltaChangesPage:
        offset = _decode_page_token(page_token)
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        types = [t.lower() for t in (entity_types or self.registry.entity_types)]

        stmt = select(SyncMetadata).where(SyncMetadata.entity_type.in_(types))
        if since is not None:
            stmt = stmt.where(SyncMetadata.last_modified_at > since)
        if client_id is not None:
            # Skip the client's own changes; server-side changes have no client
            stmt = stmt.where(
                or_(SyncMetadata.client_id.is_(None), SyncMetadata.client_id != client_id)
            )
        if organization_id is not None:
            org_filter = self._organization_filter(organization_id, types)
            if org_filter is None:
                return DeltaChangesPage()
            stmt = stmt.where(org_filter)

        stmt = (
            stmt.order_by(SyncMetadata.last_modified_at.asc(), SyncMetadata.id.asc())
            .offset(offset)
            .limit(page_size + 1)
            .execution_options(populate_existing=True)
        )
        rows = list((await self.db.execute(stmt)).scalars().all())

        has_more = len(rows) > page_size
        rows = rows[:page_size]
        payloads = await self._load_payloads(rows)

        changes = [
            SyncChange(
                entity_type=row.entity_type,
                entity_id=row.entity_id,
                operation=SyncOperation.DELETE if row.deleted_at is not None else SyncOperation.UPDATE,
                version=row.version,
                timestamp=row.last_modified_at,
                payload=payloads.get((row.entity_type, row.entity_id), {}),
            )
            for row in rows
        ]
        logger.debug(f"Delta pull for client {client_id}: {len(changes)} changes (offset {offset})")

        return DeltaChangesPage(
            changes=changes,
            next_page_token=str(offset + page_size) if has_more else None,
            has_more=has_more,
        )

    async def _load_payloads(self, rows: List[SyncMetadata]) -> Dict[tuple, dict]:
        """Current state of the live entities in ``rows``, one query per type."""
        ids_by_type: Dict[str, List[str]] = defaultdict(list)
        for row in rows:
            if row.deleted_at is None:
                ids_by_type[row.entity_type].append(row.entity_id)

        payloads: Dict[tuple, dict] = {}
        for entity_type, ids in ids_by_type.items():
            entities = await self.registry.get(entity_type).find_many({"id": ids})
            for entity in entities:
                data = entity_to_dict(entity)
                payloads[(entity_type, str(data.get("id")))] = data
        return payloads
