"""MemoryStore — dict-backed store contract.

Tests cover:
    - returned records are copies, never live rows
    - duplicate version_id rejected without a partial insert
    - in-place patch/replace/delete and not-found mapping
"""

import pytest

from conftest import T0, Widget
from versionic.core.where import Filter, eq
from versionic.errors import EntityNotFoundError, StoreError


async def test_create_assigns_keys_and_coerces(memory_store):
    row = await memory_store.create({"code": "X", "size": "3", "valid_from": T0})
    assert isinstance(row, Widget)
    assert row.version_id and row.id
    assert row.size == 3


async def test_records_are_detached_from_storage(memory_store):
    row = await memory_store.create({"code": "X", "tags": ["a"]})
    loaded = await memory_store.find_by_id(row.version_id)
    loaded.tags.append("b")
    assert (await memory_store.find_by_id(row.version_id)).tags == ["a"]


async def test_duplicate_version_id_in_batch_inserts_nothing(memory_store):
    with pytest.raises(StoreError):
        await memory_store.create_batch([{"version_id": "v1"}, {"version_id": "v1"}])
    assert await memory_store.count() == 0


async def test_update_batch_keeps_version_id(memory_store):
    row = await memory_store.create({"code": "X"})
    patch = {"version_id": "other", "name": "n"}
    assert await memory_store.update_batch(patch, eq("id", row.id)) == 1
    assert (await memory_store.find_by_id(row.version_id)).name == "n"
    assert not await memory_store.exists("other")


async def test_update_entity_patches_its_own_row(memory_store):
    row = await memory_store.create({"code": "X", "name": "old"})
    await memory_store.update(row.model_copy(update={"name": "new"}))
    assert (await memory_store.find_by_id(row.version_id)).name == "new"


async def test_replace_by_id_drops_omitted_fields(memory_store):
    row = await memory_store.create({"code": "X", "name": "n", "size": 1})
    await memory_store.replace_by_id(row.version_id, {"id": row.id, "code": "Y"})
    loaded = await memory_store.find_by_id(row.version_id)
    assert (loaded.code, loaded.name, loaded.size) == ("Y", None, None)


async def test_missing_version_raises_not_found(memory_store):
    for call in (
        memory_store.update_by_id("nope", {"name": "n"}),
        memory_store.replace_by_id("nope", {}),
        memory_store.delete_by_id("nope"),
        memory_store.find_by_id("nope"),
    ):
        with pytest.raises(EntityNotFoundError):
            await call


async def test_find_by_id_respects_extra_filter(memory_store):
    row = await memory_store.create({"code": "X"})
    with pytest.raises(EntityNotFoundError):
        await memory_store.find_by_id(row.version_id, {"code": "Y"})


async def test_delete_batch_and_ordering(memory_store):
    rows = [{"code": c, "size": s} for c, s in (("a", 2), ("b", 1), ("c", 3))]
    await memory_store.create_batch(rows)
    assert [r.code for r in await memory_store.find(Filter(order="size"))] == ["b", "a", "c"]
    assert await memory_store.delete_batch({"size": {"gte": 2}}) == 2
    assert [r.code for r in await memory_store.find()] == ["b"]
