# storage/kv_sqlite.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore:
    """
    SQLite-backed KeyValueStore.

    Schema is a single table (key TEXT PRIMARY KEY, value TEXT, updated_at REAL).

    Thread-safety:
    - each call opens its own SQLite connection
    - blocking work runs in a worker thread (asyncio.to_thread)
    """

    def __init__(self, db_path: str | Path = "cache.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SQLiteKeyValueStore ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def _get_sync(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def _set_sync(self, key: str, value: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, str(value), time.time()),
            )
            conn.commit()
        finally:
            conn.close()

    def _keys_sync(self) -> list[str]:
        conn = self._get_conn()
        try:
            return [row[0] for row in conn.execute("SELECT key FROM kv ORDER BY key")]
        finally:
            conn.close()

    def _remove_many_sync(self, keys: list[str]) -> None:
        if not keys:
            return
        conn = self._get_conn()
        try:
            conn.executemany("DELETE FROM kv WHERE key = ?", [(k,) for k in keys])
            conn.commit()
        finally:
            conn.close()

    # ---- KeyValueStore API ----

    async def get_item(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get_sync, key)

    async def set_item(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set_sync, key, value)

    async def remove_item(self, key: str) -> None:
        await asyncio.to_thread(self._remove_many_sync, [key])

    async def get_all_keys(self) -> list[str]:
        return await asyncio.to_thread(self._keys_sync)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._remove_many_sync, list(keys))
