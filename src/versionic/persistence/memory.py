"""In-memory store backend.

Keeps every row as a plain dict keyed by ``version_id``. Useful for tests and
for embedding the versioning layer without a database. Data is not persisted
between sessions.

Example:
    >>> store = MemoryStore(Story)
    >>> repo = VersionedRepository(store)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from copy import deepcopy
from typing import Any, Generic, TypeVar

from ..core.record import ID, VERSION_ID, VersionedRecord, as_data, new_id
from ..core.store import DataObject
from ..core.where import Filter, WhereLike, and_, apply_order, apply_page, as_where, eq
from ..errors import EntityNotFoundError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=VersionedRecord)


class MemoryStore(Generic[T]):
    """Dict-backed implementation of :class:`~versionic.core.store.BaseStore`.

    Every coroutine completes without yielding to the event loop, so each call
    is atomic with respect to other tasks.
    """

    def __init__(self, entity_class: type[T]) -> None:
        self.entity_class = entity_class
        self._rows: dict[str, dict[str, Any]] = {}

    @property
    def entity_name(self) -> str:
        return self.entity_class.__name__

    # ---- internals ------------------------------------------------------
    def _prepare(self, data: DataObject) -> dict[str, Any]:
        row = as_data(data)
        if not row.get(VERSION_ID):
            row[VERSION_ID] = new_id()
        if not row.get(ID):
            row[ID] = new_id()
        # validate through the model so defaults and coercion apply
        return self.entity_class.model_validate(row).model_dump(mode="python")

    def _load(self, row: dict[str, Any]) -> T:
        return self.entity_class.model_validate(deepcopy(row))

    def _select(self, where: WhereLike) -> list[dict[str, Any]]:
        predicate = as_where(where)
        if predicate is None:
            return list(self._rows.values())
        return [r for r in self._rows.values() if predicate.matches(r)]

    def _insert(self, rows: list[dict[str, Any]]) -> None:
        seen = set(self._rows)
        for row in rows:
            if row[VERSION_ID] in seen:
                raise StoreError(f"duplicate version_id {row[VERSION_ID]}", "insert")
            seen.add(row[VERSION_ID])
        for row in rows:
            self._rows[row[VERSION_ID]] = deepcopy(row)

    # ---- writes ---------------------------------------------------------
    async def create(self, data: DataObject) -> T:
        row = self._prepare(data)
        self._insert([row])
        return self._load(row)

    async def create_batch(self, rows: Sequence[DataObject]) -> list[T]:
        prepared = [self._prepare(r) for r in rows]
        self._insert(prepared)
        return [self._load(r) for r in prepared]

    async def update(self, entity: T) -> None:
        await self.update_by_id(entity.version_id, entity)

    async def update_batch(self, data: DataObject, where: WhereLike = None) -> int:
        patch = as_data(data, only_set=True)
        patch.pop(VERSION_ID, None)
        matched = self._select(where)
        updated = [
            self.entity_class.model_validate({**row, **patch}).model_dump(mode="python")
            for row in matched
        ]
        for row in updated:
            self._rows[row[VERSION_ID]] = row
        logger.debug(f"{self.entity_name}: updated {len(updated)} row(s) in place")
        return len(updated)

    async def update_by_id(self, version_id: str, data: DataObject) -> None:
        if version_id not in self._rows:
            raise EntityNotFoundError(self.entity_name, version_id)
        await self.update_batch(data, eq(VERSION_ID, version_id))

    async def replace_by_id(self, version_id: str, data: DataObject) -> None:
        if version_id not in self._rows:
            raise EntityNotFoundError(self.entity_name, version_id)
        row = {**as_data(data), VERSION_ID: version_id}
        self._rows[version_id] = self._prepare(row)

    async def delete(self, entity: T) -> None:
        await self.delete_by_id(entity.version_id)

    async def delete_batch(self, where: WhereLike = None) -> int:
        doomed = [r[VERSION_ID] for r in self._select(where)]
        for key in doomed:
            del self._rows[key]
        return len(doomed)

    async def delete_by_id(self, version_id: str) -> None:
        if self._rows.pop(version_id, None) is None:
            raise EntityNotFoundError(self.entity_name, version_id)

    # ---- reads ----------------------------------------------------------
    async def find(self, filter: Filter | WhereLike = None) -> list[T]:
        f = Filter.of(filter)
        rows = apply_order(self._select(f.where), f.order)
        return [self._load(r) for r in apply_page(rows, f.limit, f.offset)]

    async def find_one(self, filter: Filter | WhereLike = None) -> T | None:
        found = await self.find(Filter.of(filter).replace(limit=1))
        return found[0] if found else None

    async def find_by_id(self, version_id: str, filter: Filter | WhereLike = None) -> T:
        f = Filter.of(filter)
        found = await self.find_one(f.replace(where=and_(eq(VERSION_ID, version_id), f.where)))
        if found is None:
            raise EntityNotFoundError(self.entity_name, version_id)
        return found

    async def count(self, where: WhereLike = None) -> int:
        return len(self._select(where))

    async def exists(self, version_id: str) -> bool:
        return version_id in self._rows
