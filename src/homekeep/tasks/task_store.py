# tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from ..core.ports import TaskRecord
from .task_models import (
    TaskStatus,
    format_timestamp,
    parse_timestamp,
    to_epoch_ms,
    utc_now,
)

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store.

    Local stand-in for the remote task backend: it satisfies RemoteTaskStore, so
    the cache/sync layer runs end to end without a network service.

    Each task is stored as a JSON document; id, is_archived and updated_ms are
    mirrored into columns so the incremental queries can use an index.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    is_archived INTEGER NOT NULL DEFAULT 0,
                    updated_ms REAL NOT NULL DEFAULT 0,
                    data TEXT NOT NULL DEFAULT '{}'
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("is_archived", "INTEGER NOT NULL DEFAULT 0")
            add_col("updated_ms", "REAL NOT NULL DEFAULT 0")
            add_col("data", "TEXT NOT NULL DEFAULT '{}'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_updated ON tasks(updated_ms)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_archived ON tasks(is_archived)")

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _record_to_str(record: TaskRecord) -> str:
        return json.dumps(
            record,
            ensure_ascii=False,
            default=lambda v: format_timestamp(v) if isinstance(v, datetime) else str(v),
        )

    @staticmethod
    def _str_to_record(s: str | None) -> TaskRecord:
        if not s:
            return {}
        try:
            val = json.loads(s)
            return val if isinstance(val, dict) else {}
        except ValueError:
            logger.warning("TaskStore: undecodable task document; treating as empty")
            return {}

    def _row_to_task(self, row: sqlite3.Row) -> TaskRecord:
        record = self._str_to_record(row["data"])
        record["id"] = str(row["id"])
        record["is_archived"] = bool(row["is_archived"])
        return record

    def _save(self, conn: sqlite3.Connection, record: TaskRecord) -> None:
        updated = parse_timestamp(record.get("updated_date"))
        conn.execute(
            """
            INSERT INTO tasks(id, is_archived, updated_ms, data)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                is_archived = excluded.is_archived,
                updated_ms = excluded.updated_ms,
                data = excluded.data
            """,
            (
                str(record["id"]),
                1 if record.get("is_archived") else 0,
                float(to_epoch_ms(updated)) if updated is not None else 0.0,
                self._record_to_str(record),
            ),
        )

    # ---- synchronous API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_task(
        self,
        *,
        title: str,
        description: str = "",
        status: TaskStatus = TaskStatus.PENDING,
        created_by: str | None = None,
        due_date: str | None = None,
        **extra: Any,
    ) -> str:
        if not title or not title.strip():
            raise ValueError("title is required")

        now = format_timestamp(utc_now())
        task_id = str(extra.pop("id", None) or uuid.uuid4().hex)
        record: TaskRecord = {
            **extra,
            "id": task_id,
            "title": title.strip(),
            "description": description.strip(),
            "status": status.value,
            "is_archived": bool(extra.get("is_archived", False)),
            "created_by": created_by or "",
            "due_date": due_date,
            "created_date": extra.get("created_date") or now,
            "updated_date": now,
        }

        conn = self._get_conn()
        try:
            self._save(conn, record)
            conn.commit()
        finally:
            conn.close()

        logger.debug("Task added id=%s status=%s", task_id, status.value)
        return task_id

    def get_task(self, task_id: str) -> TaskRecord | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),)).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def update_task(self, task_id: str, **fields: Any) -> TaskRecord:
        """Merge fields into the stored task and stamp updated_date. Raises KeyError if absent."""
        fields.pop("id", None)

        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),)).fetchone()
            if row is None:
                raise KeyError(f"task not found: {task_id}")

            record = self._row_to_task(row)
            record.update(fields)
            record["updated_date"] = format_timestamp(utc_now())
            self._save(conn, record)
            conn.commit()
            return record
        finally:
            conn.close()

    def complete_task(self, task_id: str, *, completed_by: str | None = None) -> TaskRecord:
        now = format_timestamp(utc_now())
        return self.update_task(
            task_id,
            status=TaskStatus.COMPLETED.value,
            is_archived=True,
            archived_date=now,
            completion_date=now,
            completed_by=completed_by,
        )

    def _list_sync(self, *, include_archived: bool) -> list[TaskRecord]:
        conn = self._get_conn()
        try:
            if include_archived:
                rows = conn.execute("SELECT * FROM tasks ORDER BY rowid ASC").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM tasks WHERE is_archived = 0 ORDER BY rowid ASC"
                ).fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def _updated_since_sync(self, since_ms: float, *, limit: int | None) -> list[TaskRecord]:
        conn = self._get_conn()
        try:
            sql = "SELECT * FROM tasks WHERE updated_ms > ? ORDER BY updated_ms ASC"
            params: tuple[Any, ...] = (float(since_ms),)
            if limit is not None:
                sql += " LIMIT ?"
                params = (float(since_ms), int(limit))
            return [self._row_to_task(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def _archived_sync(self) -> list[TaskRecord]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT * FROM tasks WHERE is_archived = 1").fetchall()
            return [self._row_to_task(r) for r in rows]
        finally:
            conn.close()

    def _delete_sync(self, task_id: str) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            conn.commit()
            if cur.rowcount != 1:
                raise KeyError(f"task not found: {task_id}")
        finally:
            conn.close()

    # ---- RemoteTaskStore API ----

    async def list_tasks(self, *, include_archived: bool = False) -> list[TaskRecord]:
        return await asyncio.to_thread(self._list_sync, include_archived=include_archived)

    async def has_updates_since(self, since: datetime) -> bool:
        rows = await asyncio.to_thread(self._updated_since_sync, to_epoch_ms(since), limit=1)
        return bool(rows)

    async def get_updated_since(self, since: datetime) -> list[TaskRecord]:
        return await asyncio.to_thread(self._updated_since_sync, to_epoch_ms(since), limit=None)

    async def list_archived_tasks(self) -> list[TaskRecord]:
        return await asyncio.to_thread(self._archived_sync)

    async def delete_task(self, task_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, task_id)
        logger.debug("Task deleted id=%s", task_id)
