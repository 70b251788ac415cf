# tasks/task_cache.py

from __future__ import annotations

"""
Per-user task snapshot cache.

One JSON entry per user holds the full task list, the write time and a sync
watermark (max updated_date seen). A second key holds the watermark alone so an
incremental fetch does not need to deserialize the whole snapshot.

Every public operation is best-effort: failures are logged and reported as
Empty / False / no-op, never raised. A broken cache only costs a full fetch.

Expiry is lazy: read() deletes a stale entry when it sees one; purge_expired()
is an optional sweep for callers that want one.
"""

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from ..core.ports import KeyValueStore, TaskRecord
from ..core.result import Empty, EmptyReason, Ok, Result
from .task_models import (
    format_timestamp,
    latest_update_time,
    parse_timestamp,
    to_epoch_ms,
    utc_now,
)

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "@task_cache_"
LAST_SYNC_KEY_PREFIX = "@task_last_sync_"
CACHE_TIMESTAMP_KEY = "@task_cache_timestamp"
CACHE_EXPIRY = timedelta(days=7)


def cache_key(user_id: str) -> str:
    return f"{CACHE_KEY_PREFIX}{user_id}"


def last_sync_key(user_id: str) -> str:
    return f"{LAST_SYNC_KEY_PREFIX}{user_id}"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_timestamp(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclass(slots=True, frozen=True)
class CachedTasks:
    tasks: list[TaskRecord]
    # None only for legacy entries whose tasks carry no parseable updated_date.
    last_sync_timestamp: datetime | None


class TaskCache:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        expiry: timedelta = CACHE_EXPIRY,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._expiry_ms = int(expiry.total_seconds() * 1000)
        self._clock = clock

    def _now_ms(self) -> int:
        return to_epoch_ms(self._clock())

    def _is_fresh(self, entry: Mapping[str, Any]) -> bool:
        ts = entry.get("timestamp")
        if isinstance(ts, bool) or not isinstance(ts, (int, float)):
            return False
        return self._now_ms() - ts < self._expiry_ms

    async def write(self, user_id: str | None, tasks: Sequence[TaskRecord]) -> None:
        """
        Replace the user's snapshot.

        The watermark is the newest updated_date among tasks, or the write time
        when no task carries a usable one (so an empty data set still advances it).
        """
        if not user_id:
            return

        try:
            now = self._clock()
            latest = latest_update_time(tasks)
            watermark = format_timestamp(latest or now)
            now_ms = to_epoch_ms(now)

            payload = json.dumps(
                {
                    "tasks": list(tasks),
                    "timestamp": now_ms,
                    "lastSyncTimestamp": watermark,
                },
                ensure_ascii=False,
                default=_json_default,
            )

            await self._store.set_item(cache_key(user_id), payload)
            await self._store.set_item(last_sync_key(user_id), watermark)
            await self._store.set_item(CACHE_TIMESTAMP_KEY, str(now_ms))
            logger.debug(
                "Task cache written user=%s tasks=%d watermark=%s", user_id, len(tasks), watermark
            )
        except Exception:
            logger.exception("Failed to write task cache user=%s", user_id)

    async def read(self, user_id: str | None) -> Result[CachedTasks]:
        if not user_id:
            return Empty(EmptyReason.NO_USER)

        key = cache_key(user_id)
        try:
            raw = await self._store.get_item(key)
        except Exception:
            logger.exception("Failed to read task cache user=%s", user_id)
            return Empty(EmptyReason.ERROR)

        if not raw:
            return Empty(EmptyReason.MISSING)

        try:
            entry = json.loads(raw)
        except ValueError:
            logger.warning("Corrupt task cache entry user=%s; ignoring", user_id)
            return Empty(EmptyReason.CORRUPT)

        if not isinstance(entry, dict):
            logger.warning("Unexpected task cache entry type user=%s; ignoring", user_id)
            return Empty(EmptyReason.CORRUPT)

        if not self._is_fresh(entry):
            try:
                await self._store.remove_item(key)
                await self._store.remove_item(last_sync_key(user_id))
                logger.info("Task cache expired user=%s; removed", user_id)
            except Exception:
                logger.exception("Failed to remove expired task cache user=%s", user_id)
            return Empty(EmptyReason.EXPIRED)

        tasks = entry.get("tasks")
        if not isinstance(tasks, list):
            tasks = []

        # Legacy entries were written without a watermark.
        watermark = parse_timestamp(entry.get("lastSyncTimestamp"))
        if watermark is None:
            watermark = latest_update_time(tasks)

        return Ok(CachedTasks(tasks=tasks, last_sync_timestamp=watermark))

    async def get_watermark(self, user_id: str | None) -> Result[datetime]:
        """
        Last recorded sync watermark, regardless of whether the snapshot itself
        is still fresh. It is removed together with the snapshot, either by
        clear() or by the read() that notices expiry.
        """
        if not user_id:
            return Empty(EmptyReason.NO_USER)

        try:
            raw = await self._store.get_item(last_sync_key(user_id))
        except Exception:
            logger.exception("Failed to read sync watermark user=%s", user_id)
            return Empty(EmptyReason.ERROR)

        if not raw:
            return Empty(EmptyReason.MISSING)

        watermark = parse_timestamp(raw)
        if watermark is None:
            logger.warning("Unparseable sync watermark user=%s value=%r", user_id, raw)
            return Empty(EmptyReason.CORRUPT)
        return Ok(watermark)

    async def clear(self, user_id: str | None = None) -> None:
        """Drop one user's snapshot and watermark, or every cache key when user_id is None."""
        try:
            if user_id:
                await self._store.remove_item(cache_key(user_id))
                await self._store.remove_item(last_sync_key(user_id))
                logger.debug("Task cache cleared user=%s", user_id)
                return

            keys = await self._store.get_all_keys()
            doomed = [
                k for k in keys if k.startswith(CACHE_KEY_PREFIX) or k.startswith(LAST_SYNC_KEY_PREFIX)
            ]
            await self._store.multi_remove(doomed)
            await self._store.remove_item(CACHE_TIMESTAMP_KEY)
            logger.info("Task cache cleared for all users (%d keys)", len(doomed))
        except Exception:
            logger.exception("Failed to clear task cache user=%s", user_id)

    async def is_valid(self, user_id: str | None) -> bool:
        if not user_id:
            return False
        try:
            raw = await self._store.get_item(cache_key(user_id))
            if not raw:
                return False
            entry = json.loads(raw)
            return isinstance(entry, dict) and self._is_fresh(entry)
        except Exception:
            return False

    async def purge_expired(self) -> int:
        """
        Sweep every snapshot and drop the expired or unreadable ones.

        Returns the number of users purged. Nothing calls this on a timer.
        """
        purged = 0
        try:
            keys = await self._store.get_all_keys()
        except Exception:
            logger.exception("Failed to list keys for task cache sweep")
            return 0

        for key in keys:
            if not key.startswith(CACHE_KEY_PREFIX) or key == CACHE_TIMESTAMP_KEY:
                continue
            user_id = key[len(CACHE_KEY_PREFIX) :]

            try:
                raw = await self._store.get_item(key)
                try:
                    entry = json.loads(raw) if raw else None
                except ValueError:
                    entry = None
                if isinstance(entry, dict) and self._is_fresh(entry):
                    continue

                await self._store.multi_remove([key, last_sync_key(user_id)])
                purged += 1
            except Exception:
                logger.exception("Task cache sweep failed user=%s", user_id)

        if purged:
            logger.info("Task cache sweep removed %d stale entries", purged)
        return purged
