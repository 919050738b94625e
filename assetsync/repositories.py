# assetsync/repositories.py
"""
Entity store access for the sync engine.

Each entity type tag ("asset", "task", ...) maps to a repository exposing a
small capability interface. The registry is built once and handed to the
services that need it, so nothing looks up a model by string at call time.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Type, runtime_checkable

from sqlalchemy import delete as sa_delete, inspect, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from assetsync.core.exceptions import EntityNotFoundError, UnknownEntityTypeError

logger = logging.getLogger(__name__)

Selector = Mapping[str, Any]


@runtime_checkable
class EntityRepository(Protocol):
    async def find_first(self, selector: Selector) -> Optional[Any]: ...

    async def find_many(self, selector: Selector) -> List[Any]: ...

    async def create(self, data: Dict[str, Any]) -> Any: ...

    async def update(self, selector: Selector, data: Dict[str, Any]) -> Any: ...

    async def update_many(self, selector: Selector, data: Dict[str, Any]) -> int: ...

    async def delete(self, selector: Selector) -> Any: ...

    async def delete_many(self, selector: Selector) -> int: ...

    async def upsert(self, selector: Selector, create: Dict[str, Any], update: Dict[str, Any]) -> Any: ...


def entity_to_dict(entity: Any) -> Dict[str, Any]:
    """Column values of a mapped instance keyed by attribute name."""
    if entity is None:
        return {}
    if isinstance(entity, dict):
        return dict(entity)
    mapper = inspect(entity).mapper
    return {attr.key: getattr(entity, attr.key) for attr in mapper.column_attrs}


class SQLAlchemyRepository:
    """
    Repository over a single mapped class.

    Selectors are plain dicts of column name -> value. A list, tuple or set
    value becomes an IN clause; everything else is an equality test.
    """

    def __init__(self, model: Type[Any], db: AsyncSession):
        self.model = model
        self.db = db

    def _where(self, selector: Selector):
        clauses = []
        for key, value in (selector or {}).items():
            column = getattr(self.model, key, None)
            if column is None:
                raise ValueError(f"{self.model.__name__} has no column '{key}'")
            if isinstance(value, (list, tuple, set)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    async def find_first(self, selector: Selector) -> Optional[Any]:
        stmt = select(self.model).where(*self._where(selector)).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def find_many(self, selector: Selector) -> List[Any]:
        stmt = select(self.model).where(*self._where(selector))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create(self, data: Dict[str, Any]) -> Any:
        entity = self.model(**data)
        self.db.add(entity)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def update(self, selector: Selector, data: Dict[str, Any]) -> Any:
        entity = await self.find_first(selector)
        if entity is None:
            raise EntityNotFoundError(f"{self.model.__name__} not found for {dict(selector)}")
        for key, value in data.items():
            setattr(entity, key, value)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity

    async def update_many(self, selector: Selector, data: Dict[str, Any]) -> int:
        stmt = (
            sa_update(self.model)
            .where(*self._where(selector))
            .values(**data)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def delete(self, selector: Selector) -> Any:
        entity = await self.find_first(selector)
        if entity is None:
            raise EntityNotFoundError(f"{self.model.__name__} not found for {dict(selector)}")
        await self.db.delete(entity)
        await self.db.flush()
        return entity

    async def delete_many(self, selector: Selector) -> int:
        stmt = (
            sa_delete(self.model)
            .where(*self._where(selector))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def upsert(self, selector: Selector, create: Dict[str, Any], update: Dict[str, Any]) -> Any:
        entity = await self.find_first(selector)
        if entity is None:
            return await self.create(dict(create))
        for key, value in update.items():
            setattr(entity, key, value)
        await self.db.flush()
        await self.db.refresh(entity)
        return entity


class RepositoryRegistry:
    """Maps entity type tags to repositories."""

    def __init__(self, repositories: Optional[Mapping[str, EntityRepository]] = None):
        self._repositories: Dict[str, EntityRepository] = {}
        for entity_type, repository in (repositories or {}).items():
            self.register(entity_type, repository)

    def register(self, entity_type: str, repository: EntityRepository) -> None:
        self._repositories[entity_type.lower()] = repository

    def get(self, entity_type: str) -> EntityRepository:
        try:
            return self._repositories[entity_type.lower()]
        except KeyError:
            raise UnknownEntityTypeError(f"No repository registered for entity type '{entity_type}'")

    def __contains__(self, entity_type: str) -> bool:
        return entity_type.lower() in self._repositories

    @property
    def entity_types(self) -> Iterable[str]:
        return tuple(self._repositories)


def build_default_registry(db: AsyncSession) -> RepositoryRegistry:
    """Registry over the syncable entity tables, bound to ``db``."""
    from assetsync.models.entities import Asset, Location, Schedule, Task

    return RepositoryRegistry({
        "asset": SQLAlchemyRepository(Asset, db),
        "task": SQLAlchemyRepository(Task, db),
        "schedule": SQLAlchemyRepository(Schedule, db),
        "location": SQLAlchemyRepository(Location, db),
    })
