# src/homekeep/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the key-value store, task store, cache and sync service into AppState.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import get_settings
from ..core.state import AppState
from ..storage.kv_sqlite import SQLiteKeyValueStore
from ..tasks.task_cache import TaskCache
from ..tasks.task_store import TaskStore
from ..tasks.task_sync import TaskSyncService

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.cache_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    kv_store = SQLiteKeyValueStore(settings.cache_db_path)
    task_store = TaskStore(settings.tasks_db_path)
    cache = TaskCache(kv_store, expiry=timedelta(days=settings.cache_expiry_days))

    state = AppState(
        settings=settings,
        kv_store=kv_store,
        task_store=task_store,
        cache=cache,
        sync=TaskSyncService(cache, task_store),
        user_id=settings.default_user_id,
    )
    logger.debug("AppState created user=%s data_dir=%s", state.user_id, settings.data_dir)
    return state
