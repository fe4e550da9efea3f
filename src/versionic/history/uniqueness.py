"""
Uniqueness among *open* versions.

Closed versions never take part: two logical entities may hold the same
"unique" value as long as at most one of them currently has it open.
Checks run before any write and hold no lock, so two concurrent writers can
both pass (check-then-write gap, accepted).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..core.record import ID
from ..core.store import BaseStore
from ..core.where import Where, WhereLike, and_, eq, in_, not_in, or_
from ..errors import UniqueConflictError
from .query import open_versions

logger = logging.getLogger(__name__)


def _blank(value: Any) -> bool:
    return value is None or value == ""


def _repeated(values: Sequence[Any]) -> list[Any]:
    """Values occurring more than once, compared by equality (lists and dicts too)."""
    seen: list[Any] = []
    repeated: list[Any] = []
    for value in values:
        if value in seen:
            if value not in repeated:
                repeated.append(value)
        else:
            seen.append(value)
    return repeated


class UniquenessValidator:
    """Pre-write uniqueness checks for one entity type."""

    def __init__(self, store: BaseStore, unique_fields: Sequence[str]):
        self.store = store
        self.unique_fields = tuple(unique_fields)

    @property
    def entity_name(self) -> str:
        return self.store.entity_class.__name__

    def _conflict(self, field_name: str | None = None, values=None) -> UniqueConflictError:
        logger.warning(
            f"{self.entity_name}: unique conflict on {field_name or self.unique_fields}"
            f" values={list(values or ())}",
            extra={"entity": self.entity_name, "error_code": "UNIQUE_CONFLICT"},
        )
        return UniqueConflictError(
            self.entity_name, self.unique_fields, field_name=field_name, values=values,
        )

    def _values(self, candidates: Sequence[Mapping[str, Any]]) -> dict[str, list[Any]]:
        """Non-blank values per unique field, in candidate order."""
        return {
            name: [c[name] for c in candidates if not _blank(c.get(name))]
            for name in self.unique_fields
        }

    async def _check_store(self, values: dict[str, list[Any]], exclude_ids: Sequence[str] = ()):
        conditions: list[Where] = [
            in_(name, vals) if len(vals) > 1 else eq(name, vals[0])
            for name, vals in values.items()
            if vals
        ]
        if not conditions:
            return
        scope: WhereLike = not_in(ID, exclude_ids) if exclude_ids else None
        clashes = await self.store.count(open_versions(and_(or_(*conditions), scope)))
        if clashes > 0:
            raise self._conflict()

    # ---- public ---------------------------------------------------------
    async def validate_create_batch(self, candidates: Sequence[Mapping[str, Any]]) -> None:
        """Reject duplicates inside the batch, then against open rows."""
        if not self.unique_fields:
            return
        values = self._values(candidates)
        for name, vals in values.items():
            repeated = _repeated(vals)
            if repeated:
                raise self._conflict(name, repeated)
        await self._check_store(values)

    async def validate_update(self, data: Mapping[str, Any], target: Where) -> None:
        """Reject a write of ``data`` onto the open rows matching ``target``.

        Rows of the logical ids being updated are excluded from the duplicate
        count, so re-writing an entity's own unique value is allowed. Touching
        more than one open row while unique fields exist is always rejected.
        """
        if not self.unique_fields:
            return
        targets = await self.store.find(open_versions(target))
        await self._check_store(self._values([data]), [t.id for t in targets])
        if len(targets) > 1:
            raise self._conflict()
