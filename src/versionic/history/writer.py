"""
Physical side of versioned writes.

create           : insert(valid_from=now, valid_until=None, fresh id/version_id)
close_and_reopen : select open ➜ insert successors ➜ close originals by version_id
close            : set valid_until=now on open rows

Each logical write reads the clock once; all of its rows share that instant.
Steps are awaited strictly in order and are *not* wrapped in a transaction:
a failure between insert and close leaves two open versions for an id.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..core.clock import Clock, as_utc, now_utc
from ..core.record import (
    ID, VALID_FROM, VALID_UNTIL, VERSION_ID, VersionedRecord, strip_system,
)
from ..core.store import BaseStore
from ..core.where import Where, in_
from .query import open_versions

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=VersionedRecord)


@dataclass
class Reopened(Generic[T]):
    """Outcome of :meth:`HistoryWriter.close_and_reopen`."""

    closed: list[T] = field(default_factory=list)
    opened: list[T] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.closed)


class HistoryWriter(Generic[T]):
    """Opens and closes version rows on a :class:`BaseStore`."""

    def __init__(self, store: BaseStore[T], clock: Clock = now_utc):
        self.store = store
        self.clock = clock

    @property
    def entity_name(self) -> str:
        return self.store.entity_class.__name__

    async def create(self, candidates: Sequence[Mapping[str, Any]]) -> list[T]:
        now = as_utc(self.clock())
        rows = [
            {**strip_system(c), VALID_FROM: now, VALID_UNTIL: None}
            for c in candidates
        ]
        created = await self.store.create_batch(rows)
        logger.debug(f"{self.entity_name}: opened {len(created)} new version(s)")
        return created

    async def close_and_reopen(
        self, data: Mapping[str, Any], replace: bool, target: Where,
    ) -> Reopened[T]:
        now = as_utc(self.clock())
        current = await self.store.find(open_versions(target))
        if not current:
            return Reopened()

        overlay = strip_system(data)
        successors = [
            {
                **({} if replace else row.domain_data()),
                **overlay,
                ID: row.id,
                VALID_FROM: now,
                VALID_UNTIL: None,
            }
            for row in current
        ]
        opened = await self.store.create_batch(successors)

        # close by identity collected *before* the insert, never by `target`
        closed_ids = [row.version_id for row in current]
        try:
            n_closed = await self.store.update_batch(
                {VALID_UNTIL: now}, in_(VERSION_ID, closed_ids),
            )
        except Exception:
            logger.error(
                f"{self.entity_name}: successors inserted but predecessors "
                f"{closed_ids} left open",
                extra={"entity": self.entity_name, "operation": "close", "version_ids": closed_ids},
            )
            raise
        logger.debug(
            f"{self.entity_name}: {'replaced' if replace else 'updated'} {n_closed} version(s)"
        )
        return Reopened(closed=current, opened=opened)

    async def close(self, target: Where) -> list[T]:
        """Close every open row matching ``target``; return them as they were."""
        now = as_utc(self.clock())
        current = await self.store.find(open_versions(target))
        if not current:
            return []
        await self.store.update_batch(
            {VALID_UNTIL: now}, in_(VERSION_ID, [row.version_id for row in current]),
        )
        logger.debug(f"{self.entity_name}: closed {len(current)} version(s)")
        return current
