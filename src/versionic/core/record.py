"""
VersionedRecord kernel – *pure Pydantic* (no SQLAlchemy imports).

* Every physical row is one immutable version of a logical entity.
* `id` is shared by all versions, `version_id` is unique per row.
* `valid_until is None` ➜ the row is the *current* version.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel

T_Record = TypeVar("T_Record", bound="VersionedRecord")

ID = "id"
VERSION_ID = "version_id"
VALID_FROM = "valid_from"
VALID_UNTIL = "valid_until"

SYSTEM_FIELDS = frozenset({ID, VERSION_ID, VALID_FROM, VALID_UNTIL})


class VersionedRecord(BaseModel):
    """Base class – one instance is one frozen version row."""

    id: str | None = None
    version_id: str | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    # fields that must be unique among *open* versions only
    unique_fields: ClassVar[tuple[str, ...]] = ()

    model_config = {"frozen": True, "extra": "allow", "arbitrary_types_allowed": True}

    @property
    def is_open(self) -> bool:
        return self.valid_until is None

    def domain_data(self) -> dict[str, Any]:
        """Field values without the four system fields."""
        return strip_system(self.model_dump(mode="python"))


# helpers
def as_data(obj: Mapping[str, Any] | BaseModel, *, only_set: bool = False) -> dict[str, Any]:
    """Coerce a record or a plain mapping into a fresh ``dict``.

    ``only_set`` keeps just the fields the caller explicitly set on a model,
    which is what a merge update overlays onto the previous version.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="python", exclude_unset=only_set)
    return dict(obj)


def new_id() -> str:
    return str(uuid.uuid4())


def strip_system(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in SYSTEM_FIELDS}
