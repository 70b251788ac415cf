# tasks/task_cleanup.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from ..core.ports import RemoteTaskStore
from .task_models import parse_timestamp, task_id_of, utc_now

logger = logging.getLogger(__name__)

ARCHIVE_RETENTION_DAYS = 60
CLEANUP_BATCH_SIZE = 10


@dataclass(slots=True, frozen=True)
class CleanupResult:
    success: bool
    deleted_count: int
    error_count: int = 0
    error: str | None = None


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def is_due_for_deletion(task: Mapping[str, Any], *, now: datetime, days_old: int) -> bool:
    """
    archived_date decides; completion_date is the fallback.
    Tasks with neither are never deleted.
    """
    stamp = parse_timestamp(task.get("archived_date"))
    if stamp is None:
        stamp = parse_timestamp(task.get("completion_date"))
    if stamp is None:
        return False
    return (_as_utc(now) - stamp).days > days_old


async def cleanup_old_archived_tasks(
    remote: RemoteTaskStore,
    *,
    days_old: int = ARCHIVE_RETENTION_DAYS,
    batch_size: int = CLEANUP_BATCH_SIZE,
    now: datetime | None = None,
) -> CleanupResult:
    """Delete archived tasks older than days_old, batch_size deletions at a time."""
    now = _as_utc(now) if now is not None else utc_now()
    logger.info("Starting cleanup of archived tasks older than %d days", days_old)

    try:
        archived = await remote.list_archived_tasks()
    except Exception as e:
        logger.exception("Listing archived tasks failed")
        return CleanupResult(success=False, deleted_count=0, error=str(e))

    try:
        doomed = [
            tid
            for t in archived
            if is_due_for_deletion(t, now=now, days_old=days_old) and (tid := task_id_of(t)) is not None
        ]
    except Exception as e:
        logger.exception("Selecting archived tasks for deletion failed")
        return CleanupResult(success=False, deleted_count=0, error=str(e))

    if not doomed:
        logger.info("No archived tasks older than %d days", days_old)
        return CleanupResult(success=True, deleted_count=0)

    step = max(1, int(batch_size))
    deleted = 0
    errors = 0

    for start in range(0, len(doomed), step):
        batch = doomed[start : start + step]
        outcomes = await asyncio.gather(
            *(remote.delete_task(tid) for tid in batch), return_exceptions=True
        )
        for tid, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                errors += 1
                logger.error("Deleting task %s failed: %s", tid, outcome)
            else:
                deleted += 1

    logger.info("Cleanup completed: %d tasks deleted, %d errors", deleted, errors)
    return CleanupResult(success=errors == 0, deleted_count=deleted, error_count=errors)
