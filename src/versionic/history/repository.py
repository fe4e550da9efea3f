"""
VersionedRepository – the CRUD surface of a Base Store, reinterpreted through
versioning.

* ``history=True`` on any verb ➜ call the same store verb, arguments untouched.
* otherwise reads see only current rows (or the rows valid just before
  ``max_date``) and writes open / close version rows instead of mutating.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Generic, TypeVar

from ..core.clock import Clock, now_utc
from ..core.record import VersionedRecord, as_data
from ..core.store import BaseStore, DataObject
from ..core.where import Filter, Where, WhereLike, apply_page, as_where
from ..errors import EntityNotFoundError
from ..events import EventRegistry, registry
from .query import by_logical_id, collapse, translate
from .uniqueness import UniquenessValidator
from .writer import HistoryWriter

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=VersionedRecord)


class VersionedRepository(Generic[T]):
    """Versioning front for one entity type.

    Args:
        store: Any :class:`~versionic.core.store.BaseStore`.
        unique_fields: Overrides ``store.entity_class.unique_fields``.
        clock: Time source, read once per logical write.
        events: Hook registry notified after versioned writes.
    """

    def __init__(
        self,
        store: BaseStore[T],
        *,
        unique_fields: Sequence[str] | None = None,
        clock: Clock = now_utc,
        events: EventRegistry = registry,
    ):
        self.store = store
        self.clock = clock
        self.events = events
        if unique_fields is None:
            unique_fields = store.entity_class.unique_fields
        self.validator = UniquenessValidator(store, unique_fields)
        self.writer: HistoryWriter[T] = HistoryWriter(store, clock)

    @property
    def entity_class(self) -> type[T]:
        return self.store.entity_class

    @property
    def entity_name(self) -> str:
        return self.entity_class.__name__

    # ---- create ---------------------------------------------------------
    async def create(self, entity: DataObject, *, history: bool = False) -> T:
        if history:
            return await self.store.create(entity)
        return (await self._create([entity]))[0]

    async def create_batch(
        self, entities: Sequence[DataObject], *, history: bool = False,
    ) -> list[T]:
        if history:
            return await self.store.create_batch(entities)
        return await self._create(entities)

    async def _create(self, entities: Sequence[DataObject]) -> list[T]:
        candidates = [as_data(e) for e in entities]
        await self.validator.validate_create_batch(candidates)
        created = await self.writer.create(candidates)
        await self._emit("create", created)
        return created

    # ---- read -----------------------------------------------------------
    async def _find(self, filter: Filter, max_date: datetime | None) -> list[T]:
        rows = await self.store.find(translate(filter, max_date))
        if max_date is None:
            return rows
        return apply_page(collapse(rows), filter.limit, filter.offset)

    async def find(
        self,
        filter: Filter | WhereLike = None,
        *,
        history: bool = False,
        max_date: datetime | None = None,
    ) -> list[T]:
        if history:
            return await self.store.find(filter)
        return await self._find(Filter.of(filter), max_date)

    async def find_one(
        self,
        filter: Filter | WhereLike = None,
        *,
        history: bool = False,
        max_date: datetime | None = None,
    ) -> T | None:
        if history:
            return await self.store.find_one(filter)
        found = await self._find(Filter.of(filter).replace(limit=1), max_date)
        return found[0] if found else None

    async def find_by_id(
        self,
        entity_id: str,
        filter: Filter | WhereLike = None,
        *,
        history: bool = False,
        max_date: datetime | None = None,
    ) -> T:
        """Current (or as-of ``max_date``) version of a logical entity.

        With ``history=True`` the id is the store key, i.e. a ``version_id``.
        """
        if history:
            return await self.store.find_by_id(entity_id, filter)
        f = Filter.of(filter)
        found = await self._find(
            f.replace(where=by_logical_id(entity_id, f.where), limit=1), max_date,
        )
        if not found:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return found[0]

    async def count(
        self,
        where: WhereLike = None,
        *,
        history: bool = False,
        max_date: datetime | None = None,
    ) -> int:
        """Number of logical entities matching ``where`` (after collapsing)."""
        if history:
            return await self.store.count(where)
        return len(await self._find(Filter(where=as_where(where)), max_date))

    async def exists(
        self,
        entity_id: str,
        *,
        history: bool = False,
        max_date: datetime | None = None,
    ) -> bool:
        if history:
            return await self.store.exists(entity_id)
        found = await self._find(Filter(where=by_logical_id(entity_id), limit=1), max_date)
        return bool(found)

    # ---- update ---------------------------------------------------------
    async def _reopen(self, data: dict[str, Any], replace: bool, target: Where) -> int:
        await self.validator.validate_update(data, target)
        result = await self.writer.close_and_reopen(data, replace, target)
        await self._emit("update", result.opened)
        return result.count

    async def _reopen_one(self, entity_id: Any, data: dict[str, Any], replace: bool) -> None:
        if entity_id is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        if not await self._reopen(data, replace, by_logical_id(entity_id)):
            raise EntityNotFoundError(self.entity_name, entity_id)

    async def update(self, entity: T, *, history: bool = False) -> None:
        """Merge ``entity``'s set fields into a new version of ``entity.id``."""
        if history:
            return await self.store.update(entity)
        await self._reopen_one(entity.id, as_data(entity, only_set=True), replace=False)

    async def update_batch(
        self, data: DataObject, where: WhereLike = None, *, history: bool = False,
    ) -> int:
        """Merge ``data`` into every current entity matching ``where``."""
        if history:
            return await self.store.update_batch(data, where)
        return await self._reopen(as_data(data, only_set=True), False, as_where(where))

    async def update_by_id(
        self, entity_id: str, data: DataObject, *, history: bool = False,
    ) -> None:
        if history:
            return await self.store.update_by_id(entity_id, data)
        await self._reopen_one(entity_id, as_data(data, only_set=True), replace=False)

    async def replace_by_id(
        self, entity_id: str, data: DataObject, *, history: bool = False,
    ) -> None:
        """Open a version holding ``data`` alone (plus the id)."""
        if history:
            return await self.store.replace_by_id(entity_id, data)
        await self._reopen_one(entity_id, as_data(data), replace=True)

    # ---- delete ---------------------------------------------------------
    async def _close(self, target: Where | None) -> int:
        closed = await self.writer.close(target)
        await self._emit("delete", closed)
        return len(closed)

    async def delete(self, entity: T, *, history: bool = False) -> None:
        if history:
            return await self.store.delete(entity)
        await self.delete_by_id(entity.id)

    async def delete_batch(self, where: WhereLike = None, *, history: bool = False) -> int:
        if history:
            return await self.store.delete_batch(where)
        return await self._close(as_where(where))

    async def delete_by_id(self, entity_id: str, *, history: bool = False) -> None:
        if history:
            return await self.store.delete_by_id(entity_id)
        if entity_id is None or not await self._close(by_logical_id(entity_id)):
            raise EntityNotFoundError(self.entity_name, entity_id)

    # ---- internal util --------------------------------------------------
    async def _emit(self, event_type: str, rows: Sequence[T]) -> None:
        for row in rows:
            await self.events.emit(event_type, row)
