"""
Public surface for versionic.
Importing this module does **not** touch a database; call
`await versionic.init_versionic()` (or build a store yourself) at start-up.
"""

from .bootstrap import init_versionic
from .config import Settings, get_settings
from .core.record import VersionedRecord
from .core.where import Filter, and_, eq, gt, gte, in_, is_null, lt, lte, ne, not_in, or_
from .errors import EntityNotFoundError, StoreError, UniqueConflictError, VersionicError
from .events import on
from .history.repository import VersionedRepository
from .persistence.database import DatabaseSessionManager
from .persistence.memory import MemoryStore
from .persistence.models import versioned_table
from .persistence.store import SqlStore

__all__ = [
    "DatabaseSessionManager",
    "EntityNotFoundError",
    "Filter",
    "MemoryStore",
    "Settings",
    "SqlStore",
    "StoreError",
    "UniqueConflictError",
    "VersionedRecord",
    "VersionedRepository",
    "VersionicError",
    "and_",
    "eq",
    "get_settings",
    "gt",
    "gte",
    "in_",
    "init_versionic",
    "is_null",
    "lt",
    "lte",
    "ne",
    "not_in",
    "on",
    "or_",
    "versioned_table",
]
