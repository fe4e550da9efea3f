"""
What the versioning layer needs from a backend: a flat CRUD collection of
rows keyed by `version_id`, each call atomic on its own.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, TypeVar

from .record import VersionedRecord
from .where import Filter, WhereLike

T = TypeVar("T", bound=VersionedRecord)

DataObject = Mapping[str, Any] | VersionedRecord


class BaseStore(Protocol[T]):
    """Structural contract for a flat CRUD store of ``entity_class`` rows."""

    entity_class: type[T]

    async def create(self, data: DataObject) -> T: ...
    async def create_batch(self, rows: Sequence[DataObject]) -> list[T]: ...

    async def find(self, filter: Filter | WhereLike = None) -> list[T]: ...
    async def find_one(self, filter: Filter | WhereLike = None) -> T | None: ...
    async def find_by_id(
        self, version_id: str, filter: Filter | WhereLike = None,
    ) -> T: ...
    async def count(self, where: WhereLike = None) -> int: ...
    async def exists(self, version_id: str) -> bool: ...

    async def update(self, entity: T) -> None: ...
    async def update_batch(self, data: DataObject, where: WhereLike = None) -> int: ...
    async def update_by_id(self, version_id: str, data: DataObject) -> None: ...
    async def replace_by_id(self, version_id: str, data: DataObject) -> None: ...

    async def delete(self, entity: T) -> None: ...
    async def delete_batch(self, where: WhereLike = None) -> int: ...
    async def delete_by_id(self, version_id: str) -> None: ...
