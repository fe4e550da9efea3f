"""History query translation — predicate rewriting and per-id collapse.

Tests cover:
    - current-state predicate adds valid_until IS NULL
    - point-in-time predicate selects the version active just before T
    - paging stripped for point-in-time reads
    - collapse keeps latest valid_from, ties to highest version_id, store order
"""

from datetime import timedelta

from conftest import T0, Widget
from versionic.core.where import Filter, eq
from versionic.history.query import collapse, open_versions, translate, versions_as_of


def _row(vid, eid, start, end=None, **fields):
    return Widget(id=eid, version_id=vid, valid_from=start, valid_until=end, **fields)


def test_open_versions_requires_null_valid_until():
    w = open_versions(eq("code", "X"))
    assert w.matches({"code": "X", "valid_until": None})
    assert not w.matches({"code": "X", "valid_until": T0})
    assert not w.matches({"code": "Y", "valid_until": None})


def test_versions_as_of_boundaries():
    t1, t2 = T0 + timedelta(hours=1), T0 + timedelta(hours=2)
    w = versions_as_of(t1)
    assert w.matches({"valid_from": T0, "valid_until": None})
    assert w.matches({"valid_from": T0, "valid_until": t2})
    # closed exactly at T: still the state immediately before T
    assert w.matches({"valid_from": T0, "valid_until": t1})
    assert not w.matches({"valid_from": T0, "valid_until": T0 + timedelta(minutes=5)})
    # opened at T: not yet visible
    assert not w.matches({"valid_from": t1, "valid_until": None})


def test_translate_current_keeps_paging():
    f = translate(Filter(where=eq("code", "X"), limit=2, offset=1))
    assert f.limit == 2 and f.offset == 1
    assert f.where.matches({"code": "X", "valid_until": None})
    assert not f.where.matches({"code": "X", "valid_until": T0})


def test_translate_as_of_strips_paging():
    f = translate(Filter(where=eq("code", "X"), order=("code",), limit=2, offset=1), T0)
    assert f.limit is None and f.offset == 0
    assert f.order == ("code",)


def test_translate_accepts_plain_mapping():
    f = translate({"code": "X"})
    assert f.where.matches({"code": "X"})


def test_collapse_keeps_latest_valid_from_per_id():
    a0 = _row("a0", "A", T0, T0 + timedelta(hours=1))
    b0 = _row("b0", "B", T0)
    a1 = _row("a1", "A", T0 + timedelta(hours=1))
    assert collapse([a0, b0, a1]) == [b0, a1]


def test_collapse_tie_goes_to_highest_version_id():
    low = _row("v-1", "A", T0)
    high = _row("v-2", "A", T0)
    assert collapse([high, low]) == [high]
    assert collapse([low, high]) == [high]


def test_collapse_empty():
    assert collapse([]) == []
