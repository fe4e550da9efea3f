"""Uniqueness validator — open-row scoped duplicate detection.

Tests cover:
    - duplicates inside one create batch (blank values ignored, unhashable values compared)
    - duplicates against open rows; closed rows never conflict
    - update excludes the entity being updated
    - multi-row update rejected whenever unique fields exist
"""

import pytest

from conftest import T0, Widget
from versionic.core.where import eq, is_null
from versionic.errors import UniqueConflictError
from versionic.history.uniqueness import UniquenessValidator
from versionic.persistence.memory import MemoryStore


@pytest.fixture
def validator(store):
    return UniquenessValidator(store, Widget.unique_fields)


async def _seed(store, **fields):
    return await store.create({"valid_from": T0, "valid_until": None, **fields})


async def test_batch_duplicate_rejected(validator):
    with pytest.raises(UniqueConflictError) as exc:
        await validator.validate_create_batch([{"code": "X"}, {"code": "Y"}, {"code": "X"}])
    assert exc.value.entity_name == "Widget"
    assert exc.value.fields == ("code",)
    assert exc.value.field_name == "code"
    assert exc.value.values == ("X",)


async def test_batch_blank_values_ignored(validator):
    await validator.validate_create_batch([{"code": None}, {"code": ""}, {}, {"code": None}])


async def test_batch_distinct_values_pass(validator):
    await validator.validate_create_batch([{"code": "X"}, {"code": "Y"}])


async def test_batch_duplicate_unhashable_values_rejected():
    validator = UniquenessValidator(MemoryStore(Widget), ("tags",))
    with pytest.raises(UniqueConflictError) as exc:
        await validator.validate_create_batch(
            [{"tags": ["a", "b"]}, {"tags": {"k": 1}}, {"tags": ["a", "b"]}],
        )
    assert exc.value.values == (["a", "b"],)
    await validator.validate_create_batch([{"tags": ["a"]}, {"tags": {"k": 1}}])


async def test_open_row_conflict(store, validator):
    await _seed(store, code="X")
    with pytest.raises(UniqueConflictError):
        await validator.validate_create_batch([{"code": "Y"}, {"code": "X"}])


async def test_closed_row_does_not_conflict(store, validator):
    await store.create({"code": "X", "valid_from": T0, "valid_until": T0})
    await validator.validate_create_batch([{"code": "X"}])


async def test_no_unique_fields_skips_checks(store):
    v = UniquenessValidator(store, ())
    await _seed(store, code="X")
    await v.validate_create_batch([{"code": "X"}, {"code": "X"}])


async def test_update_with_own_value_allowed(store, validator):
    row = await _seed(store, code="X")
    await validator.validate_update({"code": "X", "name": "n"}, eq("id", row.id))


async def test_update_to_taken_value_rejected(store, validator):
    await _seed(store, code="X")
    other = await _seed(store, code="Y")
    with pytest.raises(UniqueConflictError):
        await validator.validate_update({"code": "X"}, eq("id", other.id))


async def test_update_without_unique_values_passes(store, validator):
    row = await _seed(store, code="X")
    await validator.validate_update({"name": "renamed"}, eq("id", row.id))


async def test_multi_row_update_rejected_with_unique_fields(store, validator):
    await _seed(store, code="X", size=1)
    await _seed(store, code="Y", size=1)
    with pytest.raises(UniqueConflictError):
        await validator.validate_update({"name": "same"}, eq("size", 1))


async def test_multi_row_update_allowed_without_unique_fields(store):
    await _seed(store, code="X", size=1)
    await _seed(store, code="Y", size=1)
    await UniquenessValidator(store, ()).validate_update({"name": "same"}, eq("size", 1))


async def test_checks_issue_no_writes():
    store = MemoryStore(Widget)
    validator = UniquenessValidator(store, ("code",))
    await validator.validate_create_batch([{"code": "X"}])
    assert await store.count(is_null("valid_until")) == 0


def test_conflict_response_envelope():
    err = UniqueConflictError("Widget", ("code",), field_name="code", values=["X"])
    body = err.to_response()["error"]
    assert body["code"] == "UNIQUE_CONFLICT"
    assert body["category"] == "conflict"
    assert body["debug_info"] == {"field": "code", "values": ["X"]}
