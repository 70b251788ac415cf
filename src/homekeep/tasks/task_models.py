# tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Task lifecycle status as stored in task records.

    Notes:
    - completed tasks are also archived (is_archived=True) by complete_task().
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_record(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Best-effort conversion of a task timestamp field to an aware UTC datetime.

    Accepts datetime (naive is treated as UTC), epoch millis (int/float) and
    ISO-8601 strings (a trailing "Z" is allowed). Returns None for anything else.

    An ISO string without an offset, e.g. "2024-05-01T10:00:00", is read as UTC,
    not local time. JavaScript's Date reads an offset-less date-time in the local
    zone, so producers should always send an offset or "Z".
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value) / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T10:00:00.000Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(round(dt.timestamp() * 1000))


def latest_update_time(tasks: Iterable[Mapping[str, Any]] | None) -> datetime | None:
    """Max parseable updated_date across tasks; None when there is none."""
    if not tasks:
        return None

    stamps: list[datetime] = []
    for task in tasks:
        if not isinstance(task, Mapping):
            continue
        dt = parse_timestamp(task.get("updated_date"))
        if dt is not None:
            stamps.append(dt)

    return max(stamps) if stamps else None


def task_id_of(task: Mapping[str, Any]) -> str | None:
    raw = task.get("id")
    if raw is None or raw == "":
        return None
    return str(raw)


def is_archived(task: Mapping[str, Any]) -> bool:
    return bool(task.get("is_archived"))
