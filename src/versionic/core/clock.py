"""
Time source for version intervals.

A clock is any zero-argument callable returning a ``datetime``; the
repository reads it once per logical write. Naive values are taken as UTC.
"""

import datetime as dt
from typing import Callable

Clock = Callable[[], dt.datetime]


def now_utc() -> dt.datetime:  # compact timezone‑aware timestamp
    return dt.datetime.now(tz=dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Aware UTC copy of ``value``; a naive ``value`` is read as UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)
