# src/homekeep/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task subsystem.

The cache and sync service depend on Protocols instead of concrete implementations.
This keeps persistence and the remote task backend swappable and makes testing easier.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

TaskRecord = dict[str, Any]
# Plain JSON-compatible task mapping: {"id": "...", "title": "...", "updated_date": "...", ...}.


class KeyValueStore(Protocol):
    """
    Durable, asynchronous, string-keyed persistence supplied by the host.

    Values are opaque strings; callers do their own (de)serialization.
    """

    async def get_item(self, key: str) -> str | None: ...
    async def set_item(self, key: str, value: str) -> None: ...
    async def remove_item(self, key: str) -> None: ...
    async def get_all_keys(self) -> list[str]: ...
    async def multi_remove(self, keys: Iterable[str]) -> None: ...


class RemoteTaskStore(Protocol):
    """
    Source of truth for tasks.

    get_updated_since() must return every task whose updated_date is strictly
    greater than `since`, archived ones included, so the caller can drop them
    from its snapshot.
    """

    async def list_tasks(self, *, include_archived: bool = False) -> list[TaskRecord]: ...
    async def has_updates_since(self, since: datetime) -> bool: ...
    async def get_updated_since(self, since: datetime) -> list[TaskRecord]: ...
    async def list_archived_tasks(self) -> list[TaskRecord]: ...
    async def delete_task(self, task_id: str) -> None: ...
