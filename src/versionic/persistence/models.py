"""
Table helpers: one table per entity type, every version of every logical
entity lives in it.
"""

import datetime as dt
import uuid

from sqlalchemy import Column, DateTime, MetaData, String, Table
from sqlalchemy.types import TypeDecorator

metadata = MetaData()


class UTCDateTime(TypeDecorator):
    """Store naive UTC, hand back aware UTC (SQLite drops tzinfo otherwise)."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(dt.timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=dt.timezone.utc)
        return value


def _uuid_str() -> str:
    return str(uuid.uuid4())


def versioned_table(name: str, meta: MetaData | None = None, *columns: Column) -> Table:
    """Build a ``Table`` holding the four system columns plus ``columns``.

    ``version_id`` is the primary key, ``id`` is shared by all versions.
    """
    meta = metadata if meta is None else meta
    return Table(
        name,
        meta,
        Column("version_id", String(36), primary_key=True, default=_uuid_str),
        Column("id", String(36), nullable=False, index=True, default=_uuid_str),
        Column("valid_from", UTCDateTime(), nullable=True),
        Column("valid_until", UTCDateTime(), nullable=True),
        *columns,
    )
