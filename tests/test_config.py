# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from homekeep.config import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "HOMEKEEP_DATA_DIR",
        "HOMEKEEP_CACHE_DB_PATH",
        "HOMEKEEP_CACHE_EXPIRY_DAYS",
        "HOMEKEEP_DEFAULT_USER_ID",
    ):
        monkeypatch.delenv(name, raising=False)

    s = Settings.from_env()
    assert s.cache_expiry_days == 7
    assert s.archive_retention_days == 60
    assert s.cleanup_batch_size == 10
    assert s.default_user_id == "local"
    assert s.cache_db_path == Path(".local/homekeep") / "cache.sqlite3"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HOMEKEEP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("HOMEKEEP_CACHE_EXPIRY_DAYS", "3")
    monkeypatch.setenv("HOMEKEEP_CLEANUP_BATCH_SIZE", "not-a-number")
    monkeypatch.setenv("HOMEKEEP_DEFAULT_USER_ID", "alice")

    s = Settings.from_env()
    assert s.data_dir == tmp_path
    assert s.cache_db_path == tmp_path / "cache.sqlite3"
    assert s.cache_expiry_days == 3
    assert s.cleanup_batch_size == 10
    assert s.default_user_id == "alice"
