# tests/test_kv_stores.py

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from homekeep.core.result import Ok
from homekeep.storage.kv_memory import InMemoryKeyValueStore
from homekeep.storage.kv_sqlite import SQLiteKeyValueStore
from homekeep.tasks.task_cache import TaskCache


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", ["memory", "sqlite"])
async def test_basic_operations(backend: str, tmp_path: Path) -> None:
    store = InMemoryKeyValueStore() if backend == "memory" else SQLiteKeyValueStore(tmp_path / "kv.sqlite3")

    assert await store.get_item("k1") is None
    await store.set_item("k1", "v1")
    await store.set_item("k2", "v2")
    await store.set_item("k1", "v1b")
    assert await store.get_item("k1") == "v1b"
    assert sorted(await store.get_all_keys()) == ["k1", "k2"]

    await store.remove_item("k1")
    await store.remove_item("missing")
    assert await store.get_item("k1") is None

    await store.set_item("k3", "v3")
    await store.multi_remove(["k2", "k3", "missing"])
    await store.multi_remove([])
    assert await store.get_all_keys() == []


@pytest.mark.asyncio
async def test_sqlite_store_persists_cache_across_instances(tmp_path: Path) -> None:
    db = tmp_path / "cache.sqlite3"
    tasks = [{"id": "a", "title": "Mop floor", "updated_date": "2024-04-30T09:30:00.000Z"}]

    await TaskCache(SQLiteKeyValueStore(db)).write("u1", tasks)

    cache = TaskCache(SQLiteKeyValueStore(db), expiry=timedelta(days=36500))
    got = await cache.read("u1")
    assert isinstance(got, Ok)
    assert got.value.tasks == tasks
