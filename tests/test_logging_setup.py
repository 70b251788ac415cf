# tests/test_logging_setup.py

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from homekeep.logging_setup import BackgroundQuietFilter, parse_level, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    saved_level = root.level
    yield root
    for h in list(root.handlers):
        if isinstance(h, logging.FileHandler) or any(isinstance(f, BackgroundQuietFilter) for f in h.filters):
            root.removeHandler(h)
            h.close()
    root.setLevel(saved_level)
    logging.captureWarnings(False)


def test_background_loggers_need_warning() -> None:
    f = BackgroundQuietFilter()

    assert f.filter(_record("homekeep.cli.commands", logging.DEBUG))
    assert not f.filter(_record("homekeep.tasks.task_sync", logging.INFO))
    assert f.filter(_record("homekeep.tasks.task_sync", logging.WARNING))
    assert not f.filter(_record("homekeep.storage.kv_sqlite", logging.INFO))
    assert f.filter(_record("homekeep.storage.kv_sqlite", logging.ERROR))
    # prefix match is per dotted component
    assert f.filter(_record("homekeep.storagex", logging.INFO))


def test_foreign_loggers_need_error() -> None:
    f = BackgroundQuietFilter()

    assert not f.filter(_record("asyncio", logging.WARNING))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert f.filter(_record("asyncio", logging.ERROR))
    assert not f.filter(_record("homekeeper", logging.INFO))


def test_parse_level() -> None:
    assert parse_level("debug") == logging.DEBUG
    assert parse_level(" WARNING ") == logging.WARNING
    assert parse_level(logging.ERROR) == logging.ERROR
    assert parse_level("chatty") == logging.INFO
    assert parse_level(None, default=logging.WARNING) == logging.WARNING


def test_setup_logging_uses_settings(tmp_path, restore_root_logging) -> None:
    settings = SimpleNamespace(app_name="kitchen", data_dir=tmp_path / "data", log_level="warning")

    log_file = setup_logging(settings)

    assert log_file == tmp_path / "data" / "kitchen.log"
    assert log_file.exists()

    root = restore_root_logging
    console = [h for h in root.handlers if not isinstance(h, logging.FileHandler)]
    files = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    assert len(console) == 1 and len(files) == 1
    assert console[0].level == logging.WARNING
    assert any(isinstance(f, BackgroundQuietFilter) for f in console[0].filters)

    logging.getLogger("homekeep.tasks.task_sync").debug("merged 3 tasks")
    files[0].flush()
    assert "merged 3 tasks" in log_file.read_text(encoding="utf-8")


def test_setup_logging_replaces_handlers(tmp_path, restore_root_logging) -> None:
    settings = SimpleNamespace(app_name="homekeep", data_dir=tmp_path, log_level="INFO")

    setup_logging(settings)
    setup_logging(settings, console_level=logging.DEBUG)

    root = restore_root_logging
    assert len(root.handlers) == 2
