# tests/conftest.py

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from homekeep.core.state import AppState
from homekeep.storage.kv_memory import InMemoryKeyValueStore
from homekeep.tasks.task_cache import TaskCache
from homekeep.tasks.task_store import TaskStore
from homekeep.tasks.task_sync import TaskSyncService

from .fakes import MutableClock


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def cache(kv: InMemoryKeyValueStore, clock: MutableClock) -> TaskCache:
    return TaskCache(kv, expiry=timedelta(days=7), clock=clock)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the command handlers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        cache_db_path=tmp_path / "cache.sqlite3",
        tasks_db_path=tmp_path / "tasks.sqlite3",
        cache_expiry_days=7,
        sync_interval_seconds=300.0,
        default_user_id="u1",
        archive_retention_days=60,
        cleanup_batch_size=10,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired with the in-memory key-value store and a real SQLite TaskStore.

    The cache uses the real clock here; time-travel tests build their own TaskCache.
    """
    kv = InMemoryKeyValueStore()
    task_store = TaskStore(settings.tasks_db_path)
    cache = TaskCache(kv)
    return AppState(
        settings=settings,
        kv_store=kv,
        task_store=task_store,
        cache=cache,
        sync=TaskSyncService(cache, task_store),
        user_id=settings.default_user_id,
    )
