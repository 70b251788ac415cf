# tests/test_task_cleanup.py

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from homekeep.tasks.task_cleanup import cleanup_old_archived_tasks, is_due_for_deletion

from .fakes import FakeRemoteTaskStore

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=UTC)


def test_due_for_deletion_uses_archived_then_completion_date() -> None:
    assert is_due_for_deletion({"archived_date": "2024-04-01T00:00:00Z"}, now=NOW, days_old=60)
    assert not is_due_for_deletion({"archived_date": "2024-05-15T00:00:00Z"}, now=NOW, days_old=60)
    assert is_due_for_deletion({"completion_date": "2024-03-01T00:00:00Z"}, now=NOW, days_old=60)
    assert not is_due_for_deletion({"title": "no dates"}, now=NOW, days_old=60)
    # exactly 60 whole days is not "more than" 60
    assert not is_due_for_deletion({"archived_date": "2024-05-01T12:00:00Z"}, now=NOW, days_old=60)


@pytest.mark.asyncio
async def test_cleanup_deletes_only_old_archived_tasks() -> None:
    remote = FakeRemoteTaskStore()
    for i in range(23):
        remote.put({"id": f"old{i}", "is_archived": True, "archived_date": "2024-01-01T00:00:00Z"})
    remote.put({"id": "recent", "is_archived": True, "archived_date": "2024-06-20T00:00:00Z"})
    remote.put({"id": "open", "is_archived": False, "updated_date": "2024-01-01T00:00:00Z"})

    result = await cleanup_old_archived_tasks(remote, days_old=60, batch_size=10, now=NOW)

    assert result.success is True
    assert result.deleted_count == 23
    assert result.error_count == 0
    assert set(remote.tasks) == {"recent", "open"}


@pytest.mark.asyncio
async def test_cleanup_counts_individual_delete_failures() -> None:
    remote = FakeRemoteTaskStore(fail_delete_ids={"b"})
    for tid in ("a", "b", "c"):
        remote.put({"id": tid, "is_archived": True, "completion_date": "2024-01-01T00:00:00Z"})

    result = await cleanup_old_archived_tasks(remote, batch_size=2, now=NOW)

    assert result.success is False
    assert result.deleted_count == 2
    assert result.error_count == 1
    assert set(remote.tasks) == {"b"}


@pytest.mark.asyncio
async def test_cleanup_reports_listing_failure() -> None:
    remote = FakeRemoteTaskStore(fail={"list_archived_tasks"})

    result = await cleanup_old_archived_tasks(remote, now=NOW)

    assert result.success is False
    assert result.deleted_count == 0
    assert result.error and "list_archived_tasks" in result.error


@pytest.mark.asyncio
async def test_cleanup_with_nothing_to_do() -> None:
    result = await cleanup_old_archived_tasks(FakeRemoteTaskStore(), now=NOW)
    assert result.success is True
    assert result.deleted_count == 0


@pytest.mark.asyncio
async def test_cleanup_accepts_naive_now() -> None:
    remote = FakeRemoteTaskStore()
    remote.put({"id": "old", "is_archived": True, "archived_date": "2024-01-01T00:00:00Z"})
    remote.put({"id": "recent", "is_archived": True, "archived_date": "2024-06-20T00:00:00Z"})

    result = await cleanup_old_archived_tasks(remote, now=datetime(2024, 6, 30))

    assert result.success is True
    assert result.deleted_count == 1
    assert set(remote.tasks) == {"recent"}
    assert is_due_for_deletion({"archived_date": "2024-01-01T00:00:00Z"}, now=datetime(2024, 6, 30), days_old=60)


class _MalformedArchiveRemote(FakeRemoteTaskStore):
    async def list_archived_tasks(self):
        self._check("list_archived_tasks")
        return [{"id": "ok", "is_archived": True, "archived_date": "2024-01-01T00:00:00Z"}, None]


@pytest.mark.asyncio
async def test_cleanup_reports_malformed_archived_record() -> None:
    remote = _MalformedArchiveRemote()
    remote.put({"id": "ok", "is_archived": True, "archived_date": "2024-01-01T00:00:00Z"})

    result = await cleanup_old_archived_tasks(remote, now=NOW)

    assert result.success is False
    assert result.deleted_count == 0
    assert result.error
    assert "delete_task" not in remote.calls
