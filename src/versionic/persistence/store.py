"""
Thin data-access layer around one versioned table.
Every public coroutine is exactly one session (and at most one commit).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import (
    ColumnElement, Table, and_, delete, false, func, insert, or_, select, true, update,
)
from sqlalchemy.engine import RowMapping

from ..core.record import ID, VERSION_ID, VersionedRecord, as_data, new_id
from ..core.store import DataObject
from ..core.where import And, Condition, Filter, Or, Where, WhereLike, as_where, eq
from ..core.where import and_ as all_of
from ..errors import EntityNotFoundError, StoreError
from .database import DatabaseSessionManager

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=VersionedRecord)


def compile_where(where: Where | None, table: Table) -> ColumnElement[bool]:
    """Translate a predicate tree into a SQLAlchemy boolean clause."""
    if where is None:
        return true()
    if isinstance(where, And):
        if not where.clauses:
            return true()
        return and_(*(compile_where(c, table) for c in where.clauses))
    if isinstance(where, Or):
        if not where.clauses:
            return false()
        return or_(*(compile_where(c, table) for c in where.clauses))
    if not isinstance(where, Condition):
        raise TypeError(f"unsupported predicate node {type(where).__name__}")

    try:
        col = table.c[where.field]
    except KeyError:
        raise StoreError(f"unknown column {where.field!r} on {table.name}", "query") from None

    op, value = where.op, where.value
    if op == "null":
        return col.is_(None) if value else col.is_not(None)
    if op == "eq":
        return col.is_(None) if value is None else col == value
    if op == "ne":
        return col.is_not(None) if value is None else col != value
    if op == "in":
        return col.in_(value)
    if op == "nin":
        return col.not_in(value)
    return {
        "lt": col < value,
        "lte": col <= value,
        "gt": col > value,
        "gte": col >= value,
    }[op]


class SqlStore(Generic[T]):
    """SQLAlchemy (async Core) implementation of the Base Store contract."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        table: Table,
        entity_class: type[T],
    ):
        self.db = db
        self.table = table
        self.entity_class = entity_class

    @property
    def entity_name(self) -> str:
        return self.entity_class.__name__

    # ---- helpers --------------------------------------------------------
    def _columns(self, row: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in row.items() if k in self.table.c}

    def _prepare(self, data: DataObject) -> dict[str, Any]:
        row = as_data(data)
        if not row.get(VERSION_ID):
            row[VERSION_ID] = new_id()
        if not row.get(ID):
            row[ID] = new_id()
        return self.entity_class.model_validate(row).model_dump(mode="python")

    def _load(self, mapping: RowMapping) -> T:
        return self.entity_class.model_validate(dict(mapping))

    def _where(self, where: WhereLike) -> ColumnElement[bool]:
        return compile_where(as_where(where), self.table)

    def _select(self, f: Filter):
        q = select(self.table).where(compile_where(f.where, self.table))
        for key in f.order:
            try:
                col = self.table.c[key.lstrip("-")]
            except KeyError:
                raise StoreError(
                    f"unknown order column {key!r} on {self.table.name}", "query",
                ) from None
            q = q.order_by(col.desc() if key.startswith("-") else col.asc())
        if f.offset:
            q = q.offset(f.offset)
        if f.limit is not None:
            q = q.limit(f.limit)
        return q

    # ---- writes ---------------------------------------------------------
    async def create(self, data: DataObject) -> T:
        return (await self.create_batch([data]))[0]

    async def create_batch(self, rows: Sequence[DataObject]) -> list[T]:
        """Insert all ``rows`` in one transaction."""
        prepared = [self._prepare(r) for r in rows]
        if not prepared:
            return []
        async with self.db.session() as s:
            await s.execute(insert(self.table), [self._columns(r) for r in prepared])
            await s.commit()
        return [self.entity_class.model_validate(r) for r in prepared]

    async def update(self, entity: T) -> None:
        await self.update_by_id(entity.version_id, entity)

    async def update_batch(self, data: DataObject, where: WhereLike = None) -> int:
        patch = self._columns(as_data(data, only_set=True))
        patch.pop(VERSION_ID, None)
        clause = self._where(where)
        async with self.db.session() as s:
            if not patch:
                return await s.scalar(
                    select(func.count()).select_from(self.table).where(clause)
                )
            result = await s.execute(update(self.table).where(clause).values(**patch))
            await s.commit()
        logger.debug(f"{self.table.name}: updated {result.rowcount} row(s) in place")
        return result.rowcount

    async def update_by_id(self, version_id: str, data: DataObject) -> None:
        if not await self.update_batch(data, {VERSION_ID: version_id}):
            raise EntityNotFoundError(self.entity_name, version_id)

    async def replace_by_id(self, version_id: str, data: DataObject) -> None:
        row = self._columns(self._prepare({**as_data(data), VERSION_ID: version_id}))
        values = {c.name: row.get(c.name) for c in self.table.c if c.name != VERSION_ID}
        async with self.db.session() as s:
            result = await s.execute(
                update(self.table)
                .where(self.table.c[VERSION_ID] == version_id)
                .values(**values)
            )
            await s.commit()
        if not result.rowcount:
            raise EntityNotFoundError(self.entity_name, version_id)

    async def delete(self, entity: T) -> None:
        await self.delete_by_id(entity.version_id)

    async def delete_batch(self, where: WhereLike = None) -> int:
        async with self.db.session() as s:
            result = await s.execute(delete(self.table).where(self._where(where)))
            await s.commit()
        return result.rowcount

    async def delete_by_id(self, version_id: str) -> None:
        if not await self.delete_batch({VERSION_ID: version_id}):
            raise EntityNotFoundError(self.entity_name, version_id)

    # ---- reads ----------------------------------------------------------
    async def find(self, filter: Filter | WhereLike = None) -> list[T]:
        async with self.db.session() as s:
            result = await s.execute(self._select(Filter.of(filter)))
            return [self._load(m) for m in result.mappings()]

    async def find_one(self, filter: Filter | WhereLike = None) -> T | None:
        found = await self.find(Filter.of(filter).replace(limit=1))
        return found[0] if found else None

    async def find_by_id(self, version_id: str, filter: Filter | WhereLike = None) -> T:
        f = Filter.of(filter)
        found = await self.find_one(f.replace(where=all_of(eq(VERSION_ID, version_id), f.where)))
        if found is None:
            raise EntityNotFoundError(self.entity_name, version_id)
        return found

    async def count(self, where: WhereLike = None) -> int:
        async with self.db.session() as s:
            return await s.scalar(
                select(func.count()).select_from(self.table).where(self._where(where))
            )

    async def exists(self, version_id: str) -> bool:
        return await self.count({VERSION_ID: version_id}) > 0
