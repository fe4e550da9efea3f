"""Root conftest — shared records, clock and store fixtures.

Invariants:
    - Every test gets a fresh store (in-memory dict or in-memory SQLite)
    - Timestamps come from a ManualClock; nothing reads the wall clock
    - The global hook registry is emptied after every test

Design Decisions:
    - `store` is parametrized over both backends so versioning behaviour is
      checked against MemoryStore and SqlStore alike
    - StaticPool: one shared connection, otherwise each aiosqlite connection
      would see its own empty :memory: database
"""

from datetime import datetime, timedelta, timezone
from typing import ClassVar

import pytest
from sqlalchemy import Column, Integer, MetaData, String
from sqlalchemy.pool import StaticPool

from versionic.core.record import VersionedRecord
from versionic.events import registry
from versionic.history.repository import VersionedRepository
from versionic.persistence.database import DatabaseSessionManager
from versionic.persistence.memory import MemoryStore
from versionic.persistence.models import versioned_table
from versionic.persistence.store import SqlStore

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

test_metadata = MetaData()

widgets = versioned_table(
    "widgets",
    test_metadata,
    Column("code", String(50), nullable=True),
    Column("name", String(100), nullable=True),
    Column("size", Integer, nullable=True),
)


class Widget(VersionedRecord):
    code: str | None = None
    name: str | None = None
    size: int | None = None

    unique_fields: ClassVar[tuple[str, ...]] = ("code",)


class ManualClock:
    """Deterministic clock; `advance` moves it forward."""

    def __init__(self, start: datetime = T0):
        self.now = start
        self.reads = 0

    def __call__(self) -> datetime:
        self.reads += 1
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta) if delta else timedelta(minutes=1)
        return self.now


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
async def sql_db():
    db = DatabaseSessionManager("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await db.create_all(test_metadata)
    yield db
    await db.dispose()


@pytest.fixture
def memory_store():
    return MemoryStore(Widget)


@pytest.fixture
def sql_store(sql_db):
    return SqlStore(sql_db, widgets, Widget)


@pytest.fixture(params=["memory", "sql"])
async def store(request):
    if request.param == "memory":
        yield MemoryStore(Widget)
    else:
        db = DatabaseSessionManager("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        await db.create_all(test_metadata)
        yield SqlStore(db, widgets, Widget)
        await db.dispose()


@pytest.fixture
def repo(store, clock):
    return VersionedRepository(store, clock=clock)


@pytest.fixture(autouse=True)
def _clear_hooks():
    yield
    registry.clear()
