"""
Mutation interception for syncable entity types.

``SyncTrackingStore`` sits in front of the entity repositories. Every
create/update/delete/upsert against a syncable type runs the underlying store
operation first and only then records the change in sync metadata, so a
failed write never touches metadata. Other entity types pass straight through.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from assetsync.repositories import RepositoryRegistry, Selector
from assetsync.services.sync_metadata_service import SyncMetadataService

logger = logging.getLogger(__name__)


def _entity_id(entity: Any) -> Optional[str]:
    if entity is None:
        return None
    value = entity.get("id") if isinstance(entity, dict) else getattr(entity, "id", None)
    return str(value) if value is not None else None


def _single_id(selector: Selector) -> Optional[str]:
    """The id a selector names directly, if it names exactly one."""
    if not selector:
        return None
    value = selector.get("id")
    if value is None or isinstance(value, (list, tuple, set, dict)):
        return None
    return str(value)


class SyncTrackingStore:
    """Entity store wrapper that keeps SyncMetadata in step with mutations."""

    def __init__(
        self,
        registry: RepositoryRegistry,
        metadata: SyncMetadataService,
        syncable_types: Iterable[str],
    ):
        self.registry = registry
        self.metadata = metadata
        self.syncable_types = frozenset(t.lower() for t in syncable_types)

    def is_syncable(self, entity_type: str) -> bool:
        return entity_type.lower() in self.syncable_types

    # ------------------------------------------------------------------
    # Reads (never tracked)
    # ------------------------------------------------------------------
    async def find_first(self, entity_type: str, selector: Selector) -> Optional[Any]:
        return await self.registry.get(entity_type).find_first(selector)

    async def find_many(self, entity_type: str, selector: Selector) -> List[Any]:
        return await self.registry.get(entity_type).find_many(selector)

    # ------------------------------------------------------------------
    # Tracked mutations
    # ------------------------------------------------------------------
    async def create(
        self,
        entity_type: str,
        data: Dict[str, Any],
        client_id: Optional[str] = None,
    ) -> Any:
        repository = self.registry.get(entity_type)
        result = await repository.create(data)

        if self.is_syncable(entity_type):
            entity_id = _entity_id(result)
            if entity_id is not None:
                await self.metadata.create_sync_metadata(entity_type, entity_id, data or {}, client_id)

        return result

    async def update(
        self,
        entity_type: str,
        selector: Selector,
        data: Dict[str, Any],
        client_id: Optional[str] = None,
    ) -> Any:
        repository = self.registry.get(entity_type)
        if not self.is_syncable(entity_type):
            return await repository.update(selector, data)

        entity_ids = await self.resolve_entity_ids(entity_type, selector, many=False)
        result = await repository.update(selector, data)
        for entity_id in entity_ids:
            await self.metadata.update_sync_metadata(entity_type, entity_id, data or {}, client_id)
        return result

    async def update_many(
        self,
        entity_type: str,
        selector: Selector,
        data: Dict[str, Any],
        client_id: Optional[str] = None,
    ) -> int:
        repository = self.registry.get(entity_type)
        if not self.is_syncable(entity_type):
            return await repository.update_many(selector, data)

        entity_ids = await self.resolve_entity_ids(entity_type, selector, many=True)
        count = await repository.update_many(selector, data)
        for entity_id in entity_ids:
            await self.metadata.update_sync_metadata(entity_type, entity_id, data or {}, client_id)
        return count

    async def delete(self, entity_type: str, selector: Selector, client_id: Optional[str] = None) -> Any:
        repository = self.registry.get(entity_type)
        if not self.is_syncable(entity_type):
            return await repository.delete(selector)

        entity_ids = await self.resolve_entity_ids(entity_type, selector, many=False)
        result = await repository.delete(selector)
        for entity_id in entity_ids:
            await self.metadata.mark_deleted(entity_type, entity_id, client_id)
        return result

    async def delete_many(self, entity_type: str, selector: Selector, client_id: Optional[str] = None) -> int:
        repository = self.registry.get(entity_type)
        if not self.is_syncable(entity_type):
            return await repository.delete_many(selector)

        entity_ids = await self.resolve_entity_ids(entity_type, selector, many=True)
        count = await repository.delete_many(selector)
        for entity_id in entity_ids:
            await self.metadata.mark_deleted(entity_type, entity_id, client_id)
        return count

    async def upsert(
        self,
        entity_type: str,
        selector: Selector,
        create: Optional[Dict[str, Any]],
        update: Optional[Dict[str, Any]],
        client_id: Optional[str] = None,
    ) -> Any:
        repository = self.registry.get(entity_type)
        result = await repository.upsert(selector, create or {}, update or {})

        if not self.is_syncable(entity_type):
            return result

        entity_id = _entity_id(result)
        if entity_id is None:
            return result

        if create is not None:
            payload = create
        elif update is not None:
            payload = update
        else:
            payload = {}

        existing = await self.metadata.get_sync_metadata(entity_type, entity_id)
        if existing is not None:
            await self.metadata.update_sync_metadata(entity_type, entity_id, payload, client_id)
        else:
            await self.metadata.create_sync_metadata(entity_type, entity_id, payload, client_id)
        return result

    # ------------------------------------------------------------------
    # Id resolution
    # ------------------------------------------------------------------
    async def resolve_entity_ids(
        self,
        entity_type: str,
        selector: Selector,
        many: bool = False,
    ) -> List[str]:
        """
        Ids a mutation will touch, resolved before it runs.

        A single-entity selector naming an id is used as is; anything else is
        looked up in the store. An empty result is not an error.
        """
        repository = self.registry.get(entity_type)

        if not many:
            entity_id = _single_id(selector)
            if entity_id is not None:
                return [entity_id]
            entity = await repository.find_first(selector)
            entity_id = _entity_id(entity)
            return [entity_id] if entity_id is not None else []

        entities = await repository.find_many(selector)
        return [entity_id for entity_id in (_entity_id(e) for e in entities) if entity_id is not None]
