# src/homekeep/cli/commands.py

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import cast

from ..core.ports import TaskRecord
from ..core.result import Ok
from ..core.state import AppState
from ..tasks.task_cleanup import cleanup_old_archived_tasks
from ..tasks.task_models import TaskStatus, format_timestamp, utc_now
from ..tasks.task_sync import SyncError, SyncResult

CommandEmitter = Callable[[str], None]
CommandReply = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandReply]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandReply]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            reply = cast(CommandHandler3, handler)(state, args, emit)
        else:
            reply = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(reply):
            reply = await reply
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _format_task(task: TaskRecord) -> str:
    tid = str(task.get("id") or "?")[:8]
    status = TaskStatus.from_record(task.get("status")).value
    title = task.get("title") or "(untitled)"
    due = task.get("due_date")
    due_str = f" due {due}" if due else ""
    return f"[{tid}] ({status}) {title}{due_str}"


def _format_result(result: SyncResult) -> str:
    header = f"{len(result.tasks)} task(s) [source: {result.source.value}"
    if result.changed:
        header += f", changed: {result.changed}"
    header += "]"
    if not result.tasks:
        return header
    return "\n".join([header, *(f"  {_format_task(t)}" for t in result.tasks)])


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    valid = await state.cache.is_valid(state.user_id)
    watermark = await state.cache.get_watermark(state.user_id)
    wm_str = format_timestamp(watermark.value) if isinstance(watermark, Ok) else f"none ({watermark.reason.value})"
    task_count = await asyncio.to_thread(state.task_store.count_tasks)
    return (
        "Status:\n"
        f"  User: {state.user_id}\n"
        f"  Data dir: {getattr(state.settings, 'data_dir', '?')}\n"
        f"  Tasks in store: {task_count}\n"
        f"  Cache valid: {'yes' if valid else 'no'}\n"
        f"  Watermark: {wm_str}"
    )


def cmd_user(state: AppState, args: list[str]) -> str:
    """
    /user       -> show current user
    /user <id>  -> switch user
    """
    if not args:
        return f"Current user: {state.user_id}"
    state.user_id = args[0]
    return f"Switched to user {state.user_id}."


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    try:
        result = await state.sync.load(state.user_id)
    except SyncError:
        logger.exception("Task load failed user=%s", state.user_id)
        return "Could not load tasks (remote fetch failed)."
    return _format_result(result)


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    try:
        result = await state.sync.refresh(state.user_id)
    except SyncError:
        logger.exception("Task refresh failed user=%s", state.user_id)
        return "Could not refresh tasks (remote fetch failed)."
    return _format_result(result)


async def cmd_add(state: AppState, args: list[str]) -> str:
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title>"
    task_id = await asyncio.to_thread(state.task_store.add_task, title=title, created_by=state.user_id)
    return f"Task added [{task_id[:8]}] {title}"


async def cmd_done(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    """
    /done <id>  -> complete and archive a task (an unambiguous id prefix is enough)
    """
    if not args:
        return "Usage: /done <id>"

    prefix = args[0]
    open_tasks = await state.task_store.list_tasks(include_archived=False)
    matches = [t for t in open_tasks if str(t.get("id", "")).startswith(prefix)]
    if not matches:
        return f"No open task matches id {prefix}."
    if len(matches) > 1:
        return f"Id prefix {prefix} is ambiguous ({len(matches)} tasks)."

    task = await asyncio.to_thread(
        state.task_store.complete_task, matches[0]["id"], completed_by=state.user_id
    )
    await state.sync.invalidate(state.user_id)
    if emit is not None:
        emit("Cache cleared; next /tasks will refetch.")
    return f"Completed {_format_task(task)}"


async def cmd_watermark(state: AppState, args: list[str]) -> str:
    watermark = await state.cache.get_watermark(state.user_id)
    if isinstance(watermark, Ok):
        return f"Watermark for {state.user_id}: {format_timestamp(watermark.value)}"
    return f"No watermark for {state.user_id} ({watermark.reason.value})."


async def cmd_valid(state: AppState, args: list[str]) -> str:
    valid = await state.cache.is_valid(state.user_id)
    return f"Cache for {state.user_id} is {'valid' if valid else 'missing or expired'}."


async def cmd_clear(state: AppState, args: list[str]) -> str:
    """
    /clear      -> drop the current user's cache
    /clear all  -> drop every user's cache
    """
    if args and args[0].lower() == "all":
        await state.cache.clear()
        return "Cleared task cache for all users."
    await state.cache.clear(state.user_id)
    return f"Cleared task cache for {state.user_id}."


async def cmd_purge(state: AppState, args: list[str]) -> str:
    purged = await state.cache.purge_expired()
    return f"Purged {purged} stale cache entr{'y' if purged == 1 else 'ies'}."


async def cmd_cleanup(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    days = int(getattr(state.settings, "archive_retention_days", 60))
    batch = int(getattr(state.settings, "cleanup_batch_size", 10))
    if emit is not None:
        emit(f"Deleting tasks archived more than {days} days ago...")

    result = await cleanup_old_archived_tasks(
        state.task_store, days_old=days, batch_size=batch, now=utc_now()
    )
    if result.error:
        return f"Cleanup failed: {result.error}"
    return f"Cleanup: {result.deleted_count} deleted, {result.error_count} errors."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show user, cache validity and watermark.")
registry.register("user", cmd_user, help_text="Show or switch user: /user <id>.")
registry.register("tasks", cmd_tasks, help_text="Load tasks (cache + incremental sync).", aliases=["ls"])
registry.register("refresh", cmd_refresh, help_text="Drop the cache and fetch everything.")
registry.register("add", cmd_add, help_text="Add a task: /add <title>.")
registry.register("done", cmd_done, help_text="Complete a task: /done <id>.")
registry.register("watermark", cmd_watermark, help_text="Show the incremental sync watermark.")
registry.register("valid", cmd_valid, help_text="Check whether the cache is fresh.")
registry.register("clear", cmd_clear, help_text="Clear cache: /clear | /clear all.")
registry.register("purge", cmd_purge, help_text="Remove expired cache entries.")
registry.register("cleanup", cmd_cleanup, help_text="Delete long-archived tasks.")
