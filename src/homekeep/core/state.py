# src/homekeep/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_cache import TaskCache
from ..tasks.task_store import TaskStore
from ..tasks.task_sync import TaskSyncService
from .ports import KeyValueStore


@dataclass
class AppState:
    # Settings object (homekeep.config.Settings or a test stand-in).
    settings: Any

    kv_store: KeyValueStore
    task_store: TaskStore
    cache: TaskCache
    sync: TaskSyncService

    # Whose tasks the console is looking at; /user switches it.
    user_id: str = "local"
