"""
Read-path translation: logical filter ➜ physical filter over version rows,
plus the per-id collapse used by point-in-time reads.

current     : where AND valid_until IS NULL
as of  T    : where AND valid_from < T AND (valid_until IS NULL OR valid_until >= T)
              then keep the latest `valid_from` per `id`
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TypeVar

from ..core.clock import as_utc
from ..core.record import ID, VALID_FROM, VALID_UNTIL, VersionedRecord
from ..core.where import Filter, Where, WhereLike, and_, eq, gte, is_null, lt, or_

T = TypeVar("T", bound=VersionedRecord)


def open_versions(where: WhereLike = None) -> Where:
    """Rows that are the current version *and* match ``where``."""
    return and_(is_null(VALID_UNTIL), where)


def versions_as_of(when: datetime, where: WhereLike = None) -> Where:
    """Rows that were active immediately before ``when``."""
    return and_(
        lt(VALID_FROM, when),
        or_(is_null(VALID_UNTIL), gte(VALID_UNTIL, when)),
        where,
    )


def by_logical_id(entity_id: str, where: WhereLike = None) -> Where:
    return and_(eq(ID, entity_id), where)


def translate(filter: Filter | WhereLike, max_date: datetime | None = None) -> Filter:
    """Rewrite a caller filter for the store.

    Point-in-time reads may return several versions per id before collapsing,
    so paging is stripped here and re-applied after :func:`collapse`.
    """
    f = Filter.of(filter)
    if max_date is None:
        return f.replace(where=open_versions(f.where))
    return f.replace(where=versions_as_of(as_utc(max_date), f.where), limit=None, offset=0)


def collapse(rows: Sequence[T]) -> list[T]:
    """Keep one row per logical id: the one with the greatest ``valid_from``.

    Ties go to the greater ``version_id`` so the pick is deterministic.
    Store order is preserved for the survivors.
    """
    latest: dict[str, T] = {}
    for row in rows:
        best = latest.get(row.id)
        if best is None or _rank(row) > _rank(best):
            latest[row.id] = row
    winners = {row.version_id for row in latest.values()}
    return [row for row in rows if row.version_id in winners]


def _rank(row: VersionedRecord) -> tuple:
    return (row.valid_from is not None, row.valid_from, row.version_id or "")

