# tasks/task_sync.py

from __future__ import annotations

"""
Incremental task sync.

Load path:
- serve the cached snapshot when one exists,
- ask the remote store whether anything changed after the watermark,
- fetch only the delta, merge it by id and write the merged set back.

Without a usable snapshot the service falls back to a full fetch.
"""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from ..core.ports import RemoteTaskStore, TaskRecord
from ..core.result import Ok
from .task_cache import TaskCache
from .task_models import is_archived, task_id_of

logger = logging.getLogger(__name__)


class SyncError(RuntimeError):
    """Full fetch from the remote task store failed."""


class SyncSource(StrEnum):
    CACHE = "cache"
    DELTA = "delta"
    FULL = "full"


@dataclass(slots=True, frozen=True)
class SyncResult:
    tasks: list[TaskRecord]
    source: SyncSource
    changed: int = 0


def merge_tasks(cached: Iterable[TaskRecord], updated: Iterable[TaskRecord]) -> list[TaskRecord]:
    """
    Apply a delta to a snapshot.

    - records are keyed by id; cached order is preserved
    - updated records overwrite cached ones, unknown ids are appended
    - records that are now archived are dropped
    - records without an id are kept as they are
    """
    by_id: dict[str, TaskRecord] = {}
    anonymous: list[TaskRecord] = []

    for task in cached:
        tid = task_id_of(task)
        if tid is None:
            anonymous.append(task)
        else:
            by_id[tid] = task

    for task in updated:
        tid = task_id_of(task)
        if tid is None:
            anonymous.append(task)
        else:
            by_id[tid] = task

    merged = [t for t in by_id.values() if not is_archived(t)]
    merged.extend(t for t in anonymous if not is_archived(t))
    return merged


class TaskSyncService:
    def __init__(self, cache: TaskCache, remote: RemoteTaskStore) -> None:
        self.cache = cache
        self.remote = remote

    async def load(self, user_id: str) -> SyncResult:
        """Cached snapshot brought up to date with the remote delta (or a full fetch)."""
        cached = await self.cache.read(user_id)

        if isinstance(cached, Ok) and cached.value.last_sync_timestamp is not None:
            snapshot = cached.value
            watermark = snapshot.last_sync_timestamp

            try:
                has_updates = await self.remote.has_updates_since(watermark)
            except Exception:
                logger.exception("has_updates_since failed user=%s; serving cache", user_id)
                return SyncResult(tasks=snapshot.tasks, source=SyncSource.CACHE)

            if not has_updates:
                logger.debug("No updates since %s user=%s; using cache", watermark, user_id)
                return SyncResult(tasks=snapshot.tasks, source=SyncSource.CACHE)

            try:
                delta = await self.remote.get_updated_since(watermark)
            except Exception:
                logger.exception("get_updated_since failed user=%s; serving cache", user_id)
                return SyncResult(tasks=snapshot.tasks, source=SyncSource.CACHE)

            merged = merge_tasks(snapshot.tasks, delta)
            await self.cache.write(user_id, merged)
            logger.info("Merged %d updated tasks user=%s", len(delta), user_id)
            return SyncResult(tasks=merged, source=SyncSource.DELTA, changed=len(delta))

        return await self.refresh(user_id)

    async def refresh(self, user_id: str) -> SyncResult:
        """Drop the snapshot and rebuild it from a full remote fetch."""
        await self.cache.clear(user_id)

        try:
            tasks = await self.remote.list_tasks(include_archived=False)
        except Exception as e:
            raise SyncError(f"full task fetch failed for user={user_id}") from e

        await self.cache.write(user_id, tasks)
        logger.info("Full task fetch user=%s tasks=%d", user_id, len(tasks))
        return SyncResult(tasks=tasks, source=SyncSource.FULL, changed=len(tasks))

    async def invalidate(self, user_id: str) -> None:
        """Forget the snapshot after a local mutation so the next load refetches."""
        await self.cache.clear(user_id)


async def run_periodic_sync(
        service: TaskSyncService,
        user_id: str,
        *,
        interval_seconds: float = 300.0,
) -> None:
    """
    Simple polling loop.

    Every interval_seconds call service.load(user_id). Failures are logged and the
    loop keeps going. To stop it, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            result = await service.load(user_id)
            logger.debug(
                "Periodic sync user=%s source=%s tasks=%d",
                user_id,
                result.source.value,
                len(result.tasks),
            )
        except Exception:
            # CancelledError is not an Exception subclass, so cancellation still stops the loop.
            logger.exception("Periodic sync failed user=%s", user_id)

        await asyncio.sleep(sleep_s)
