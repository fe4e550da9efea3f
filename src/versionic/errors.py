"""
Exceptions raised by the versioning layer and its store backends.
Each carries a stable code and category; `to_response()` gives a plain envelope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable


class ErrorSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    CONFLICT = "conflict"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"


@dataclass
class ErrorContext:
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    debug_info: dict[str, Any] | None = None


class VersionicError(Exception):
    """Base exception for all versionic errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_response(self) -> dict:
        """Convert to a plain error envelope (e.g. for an HTTP layer)."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "debug_info": self.context.debug_info,
            }
        }


# ---- versioning ---------------------------------------------------------

class UniqueConflictError(VersionicError):
    """A write would leave two open versions sharing a unique value."""
    def __init__(
        self,
        entity_name: str,
        fields: Iterable[str],
        *,
        field_name: str | None = None,
        values: Iterable[Any] | None = None,
        context: ErrorContext | None = None,
    ):
        self.entity_name = entity_name
        self.fields = tuple(fields)
        self.field_name = field_name
        self.values = tuple(values) if values is not None else ()
        ctx = context or ErrorContext()
        if field_name is not None:
            ctx.debug_info = {"field": field_name, "values": list(self.values)}
        super().__init__(
            f"{entity_name} unique constraint violated on ({', '.join(self.fields)})",
            "UNIQUE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx,
        )


class EntityNotFoundError(VersionicError):
    """No (current or point-in-time valid) version exists for the id."""
    def __init__(
        self, entity_name: str, entity_id: Any, context: ErrorContext | None = None,
    ):
        self.entity_name = entity_name
        self.entity_id = entity_id
        super().__init__(
            f"{entity_name} '{entity_id}' not found",
            "ENTITY_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context,
        )


# ---- store --------------------------------------------------------------

class StoreError(VersionicError):
    """Backing store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Store {operation} failed: {message}",
            "STORE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context,
        )
        self.operation = operation
