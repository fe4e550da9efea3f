"""
Tiny predicate language shared by every store backend.

Nodes are immutable and evaluate in memory with SQL NULL semantics
(`matches`), while `SqlStore` compiles the very same tree to SQLAlchemy.

    >>> w = eq("code", "X") & is_null("valid_until")
    >>> w.matches({"code": "X", "valid_until": None})
    True
"""

from __future__ import annotations

import dataclasses
import operator
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Union


class Where:
    """Base node – supports `&` and `|` composition."""

    def matches(self, row: Mapping[str, Any]) -> bool:  # pragma: no cover
        raise NotImplementedError

    def __and__(self, other: "Where") -> "And":
        return and_(self, other)

    def __or__(self, other: "Where") -> "Or":
        return or_(self, other)


@dataclass(frozen=True)
class Condition(Where):
    field: str
    op: str
    value: Any = None

    def __post_init__(self):
        if self.op not in OPS:
            raise ValueError(f"unknown operator {self.op!r}")

    def matches(self, row: Mapping[str, Any]) -> bool:
        actual = row.get(self.field)
        if self.op == "null":
            return (actual is None) is bool(self.value)
        if self.op == "eq" and self.value is None:
            return actual is None
        if self.op == "ne" and self.value is None:
            return actual is not None
        if actual is None:
            # NULL compared to anything is unknown ➜ never matches
            return False
        if self.op == "in":
            return actual in self.value
        if self.op == "nin":
            return actual not in self.value
        return OPS[self.op](actual, self.value)


@dataclass(frozen=True)
class And(Where):
    clauses: tuple[Where, ...] = ()

    def matches(self, row: Mapping[str, Any]) -> bool:
        return all(c.matches(row) for c in self.clauses)


@dataclass(frozen=True)
class Or(Where):
    clauses: tuple[Where, ...] = ()

    def matches(self, row: Mapping[str, Any]) -> bool:
        return any(c.matches(row) for c in self.clauses)


OPS: dict[str, Callable[[Any, Any], bool] | None] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "lte": operator.le,
    "gt": operator.gt,
    "gte": operator.ge,
    "in": None,
    "nin": None,
    "null": None,
}

WhereLike = Union[Where, Mapping[str, Any], None]


# ── builders ────────────────────────────────────────────────────────────────
def eq(name: str, value: Any) -> Condition:
    return Condition(name, "eq", value)


def ne(name: str, value: Any) -> Condition:
    return Condition(name, "ne", value)


def lt(name: str, value: Any) -> Condition:
    return Condition(name, "lt", value)


def lte(name: str, value: Any) -> Condition:
    return Condition(name, "lte", value)


def gt(name: str, value: Any) -> Condition:
    return Condition(name, "gt", value)


def gte(name: str, value: Any) -> Condition:
    return Condition(name, "gte", value)


def in_(name: str, values: Iterable[Any]) -> Condition:
    return Condition(name, "in", tuple(values))


def not_in(name: str, values: Iterable[Any]) -> Condition:
    return Condition(name, "nin", tuple(values))


def is_null(name: str, null: bool = True) -> Condition:
    return Condition(name, "null", null)


def and_(*clauses: WhereLike) -> And:
    """Conjunction of the non-empty clauses; nested `And`s are flattened."""
    flat: list[Where] = []
    for c in clauses:
        w = as_where(c)
        if w is None:
            continue
        flat.extend(w.clauses if isinstance(w, And) else (w,))
    return And(tuple(flat))


def or_(*clauses: WhereLike) -> Or:
    return Or(tuple(w for w in map(as_where, clauses) if w is not None))


def as_where(value: WhereLike) -> Where | None:
    """Accept a node, ``None`` or the dict shorthand.

    ``{"code": "X", "size": {"lt": 3}, "or": [{...}, {...}]}`` – sibling keys
    are AND-ed, ``{"field": None}`` means IS NULL.
    """
    if value is None or isinstance(value, Where):
        return value
    if not isinstance(value, Mapping):
        raise TypeError(f"cannot build a predicate from {type(value).__name__}")

    parts: list[Where] = []
    for key, spec in value.items():
        if key in ("and", "or"):
            nodes = [as_where(v) for v in spec]
            parts.append(and_(*nodes) if key == "and" else or_(*nodes))
        elif isinstance(spec, Mapping):
            for op, operand in spec.items():
                if op in ("in", "nin"):
                    operand = tuple(operand)
                parts.append(Condition(key, op, operand))
        else:
            parts.append(eq(key, spec))
    return parts[0] if len(parts) == 1 else And(tuple(parts))


# ── filter ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Filter:
    """Read request: predicate + ordering + paging.

    ``order`` entries are field names, ``"-field"`` sorts descending.
    """

    where: Where | None = None
    order: tuple[str, ...] = field(default_factory=tuple)
    limit: int | None = None
    offset: int = 0

    def __post_init__(self):
        object.__setattr__(self, "where", as_where(self.where))
        if isinstance(self.order, str):
            object.__setattr__(self, "order", (self.order,))
        else:
            object.__setattr__(self, "order", tuple(self.order))

    @classmethod
    def of(cls, value: "Filter | WhereLike") -> "Filter":
        if isinstance(value, Filter):
            return value
        return cls(where=as_where(value))

    def replace(self, **changes: Any) -> "Filter":
        return dataclasses.replace(self, **changes)


def apply_order(rows: list[dict[str, Any]], order: tuple[str, ...]) -> list[dict[str, Any]]:
    """Stable multi-key sort; ``None`` values sort first ascending."""
    for key in reversed(order):
        desc = key.startswith("-")
        name = key.lstrip("-")
        rows = sorted(
            rows,
            key=lambda r: (r.get(name) is not None, r.get(name)),
            reverse=desc,
        )
    return rows


def apply_page(rows: list, limit: int | None, offset: int) -> list:
    end = None if limit is None else offset + limit
    return rows[offset:end]
