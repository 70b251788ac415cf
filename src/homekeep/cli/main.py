# src/homekeep/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs:
- the periodic incremental sync as a background task,
- the console REPL in the foreground.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.task_sync import run_periodic_sync

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.task_store.close()
    except Exception:
        logger.debug("TaskStore close failed.", exc_info=True)


async def _run(state: AppState) -> None:
    interval = float(getattr(state.settings, "sync_interval_seconds", 300.0))
    syncer = asyncio.create_task(
        run_periodic_sync(state.sync, state.user_id, interval_seconds=interval)
    )
    try:
        await run_console_loop(state)
    finally:
        syncer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await syncer


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(settings)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)

    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
