# src/homekeep/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing required at import time; every key has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "HOMEKEEP"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    cache_db_path: Path
    tasks_db_path: Path

    # ---- Cache / sync tuning ----
    cache_expiry_days: int
    sync_interval_seconds: float
    default_user_id: str

    # ---- Archive cleanup ----
    archive_retention_days: int
    cleanup_batch_size: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "homekeep").strip() or "homekeep"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/homekeep"))
        cache_db_path = _env_path(_k("CACHE_DB_PATH"), data_dir / "cache.sqlite3")
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        cache_expiry_days = max(1, _env_int(_k("CACHE_EXPIRY_DAYS"), 7))
        sync_interval_seconds = max(1.0, _env_float(_k("SYNC_INTERVAL_SECONDS"), 300.0))
        default_user_id = _env(_k("DEFAULT_USER_ID"), "local").strip() or "local"

        archive_retention_days = max(0, _env_int(_k("ARCHIVE_RETENTION_DAYS"), 60))
        cleanup_batch_size = max(1, _env_int(_k("CLEANUP_BATCH_SIZE"), 10))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            cache_db_path=cache_db_path,
            tasks_db_path=tasks_db_path,
            cache_expiry_days=cache_expiry_days,
            sync_interval_seconds=sync_interval_seconds,
            default_user_id=default_user_id,
            archive_retention_days=archive_retention_days,
            cleanup_batch_size=cleanup_batch_size,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Load .env (without overriding real env vars) and build Settings once."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
