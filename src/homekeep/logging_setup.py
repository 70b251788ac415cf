# src/homekeep/logging_setup.py

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

APP_LOGGER = "homekeep"

# Loggers that emit while the user is typing: the periodic sync task and the
# KV/SQLite backends it drives.
BACKGROUND_LOGGERS: tuple[str, ...] = (
    "homekeep.tasks.task_sync",
    "homekeep.storage",
)

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def _is_under(name: str, prefix: str) -> bool:
    return name == prefix or name.startswith(prefix + ".")


def parse_level(raw: Any, default: int = logging.INFO) -> int:
    """'debug', 'WARNING', 10 -> logging level number; unknown names give default."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    level = logging.getLevelName(str(raw or "").strip().upper())
    return level if isinstance(level, int) else default


class BackgroundQuietFilter(logging.Filter):
    """
    Console filter for the REPL.

    Foreground homekeep loggers pass at any level. Background homekeep loggers
    need background_level. Everything else, including py.warnings, needs
    foreign_level.
    """

    def __init__(
        self,
        *,
        background: Iterable[str] = BACKGROUND_LOGGERS,
        background_level: int = logging.WARNING,
        foreign_level: int = logging.ERROR,
    ) -> None:
        super().__init__()
        self.background = tuple(background)
        self.background_level = background_level
        self.foreign_level = foreign_level

    def filter(self, record: logging.LogRecord) -> bool:
        if not _is_under(record.name, APP_LOGGER):
            return record.levelno >= self.foreign_level
        if any(_is_under(record.name, p) for p in self.background):
            return record.levelno >= self.background_level
        return True


def log_file_for(settings: Any) -> Path:
    name = str(getattr(settings, "app_name", "") or APP_LOGGER)
    return Path(settings.data_dir) / f"{name}.log"


def setup_logging(settings: Any, *, console_level: int | None = None) -> Path:
    """
    Console gets settings.log_level (or console_level) through BackgroundQuietFilter;
    <data_dir>/<app_name>.log gets everything at DEBUG.

    Replaces whatever handlers the root logger had. Returns the log file path.
    """
    log_file = log_file_for(settings)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    if console_level is None:
        console_level = parse_level(getattr(settings, "log_level", None))

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(formatter)
    console.addFilter(BackgroundQuietFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
