"""SQLite Store 测试

测试内容：
1. 任务创建/查询/列表排序与筛选
2. dispatch_count 在 SQL 中自增
3. 活动日志 append-only 与删除后保留
4. 事务：活动条目失败不回滚状态变更；任务更新失败整体回滚
"""

from datetime import UTC, datetime, timedelta

import pytest
from agenthq.core.models import (
    ActivityAction,
    ActivityLogEntry,
    AgentId,
    TaskCreate,
    TaskPriority,
    TaskStatus,
)
from agenthq.core.store import (
    create_task_with_activity,
    delete_task_with_activity,
    update_task_and_record_activity,
)
from agenthq.core.store.sqlite_init import verify_wal_mode


def _entry(task_id: int, action: ActivityAction, detail: str = "") -> ActivityLogEntry:
    return ActivityLogEntry(
        task_id=task_id,
        agent="bernard",
        action=action,
        detail=detail,
        created_at=datetime.now(UTC),
    )


async def _create(store_group, title: str, **kwargs) -> int:
    now = kwargs.pop("now", datetime.now(UTC))
    task_id, _ = await create_task_with_activity(
        store_group.conn,
        store_group.task_store,
        store_group.activity_store,
        TaskCreate(title=title, **kwargs),
        now,
        detail=f'Task "{title}" created',
    )
    return task_id


class TestTaskStore:
    async def test_create_defaults(self, store_group):
        task_id = await _create(store_group, "Audit plugins")
        task = await store_group.task_store.get_task(task_id)

        assert task is not None
        assert task.status == TaskStatus.QUEUED
        assert task.priority == TaskPriority.MEDIUM
        assert task.agent == AgentId.UNASSIGNED
        assert task.category == "general"
        assert task.dispatch_count == 0
        assert task.completed_at is None

    async def test_get_missing(self, store_group):
        assert await store_group.task_store.get_task(999) is None

    async def test_context_names_joined(self, store_group):
        now = datetime.now(UTC)
        client_id = await store_group.context_store.create_client("Acme", now, platform="shopify")
        project_id = await store_group.context_store.create_project(
            "Redesign", now, client_id=client_id, project_type="web"
        )
        task_id = await _create(
            store_group, "Theme", client_id=client_id, project_id=project_id
        )

        task = await store_group.task_store.get_task(task_id)
        assert task.client_name == "Acme"
        assert task.project_name == "Redesign"

        client, project = await store_group.get_task_context(task)
        assert client.platform == "shopify"
        assert project.project_type == "web"

    async def test_list_order(self, store_group):
        base = datetime.now(UTC)
        low = await _create(store_group, "low", priority=TaskPriority.LOW, now=base)
        old_high = await _create(store_group, "old high", priority=TaskPriority.HIGH, now=base)
        new_high = await _create(
            store_group, "new high", priority=TaskPriority.HIGH, now=base + timedelta(seconds=5)
        )
        urgent = await _create(store_group, "urgent", priority=TaskPriority.URGENT, now=base)

        tasks = await store_group.task_store.list_tasks()
        assert [t.id for t in tasks] == [urgent, new_high, old_high, low]

    async def test_list_filters(self, store_group):
        await _create(store_group, "a", agent=AgentId.CLAW)
        await _create(store_group, "b", agent=AgentId.VALE)

        claw = await store_group.task_store.list_tasks(agent="claw")
        assert [t.title for t in claw] == ["a"]

        everything = await store_group.task_store.list_tasks(agent="all", status="all")
        assert len(everything) == 2

        queued = await store_group.task_store.list_tasks(status="queued")
        assert len(queued) == 2
        assert await store_group.task_store.list_tasks(status="done") == []

    async def test_dispatch_count_increments_in_sql(self, store_group):
        task_id = await _create(store_group, "count", agent=AgentId.GUMBO)
        for _ in range(3):
            await update_task_and_record_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                task_id,
                {"status": TaskStatus.IN_PROGRESS},
                datetime.now(UTC),
                None,
                increment_dispatch_count=True,
            )

        task = await store_group.task_store.get_task(task_id)
        assert task.dispatch_count == 3
        assert task.status == TaskStatus.IN_PROGRESS

    async def test_unknown_column_rejected(self, store_group):
        task_id = await _create(store_group, "guard")
        with pytest.raises(ValueError):
            await store_group.task_store.update_task_fields(
                task_id, {"dispatch_count": 0}, datetime.now(UTC)
            )

    async def test_wal_mode(self, store_group):
        assert await verify_wal_mode(store_group.conn)


class TestActivityStore:
    async def test_entries_in_order(self, store_group):
        task_id = await _create(store_group, "history")
        for action in (ActivityAction.DISPATCHED, ActivityAction.COMPLETED):
            await update_task_and_record_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                task_id,
                {},
                datetime.now(UTC),
                _entry(task_id, action),
            )

        entries = await store_group.activity_store.get_entries_for_task(task_id)
        assert [e.action for e in entries] == [
            ActivityAction.CREATED,
            ActivityAction.DISPATCHED,
            ActivityAction.COMPLETED,
        ]
        assert entries[0].detail == 'Task "history" created'

        recent = await store_group.activity_store.list_recent(limit=2)
        assert [e.action for e in recent] == [ActivityAction.COMPLETED, ActivityAction.DISPATCHED]

    async def test_deleted_entry_outlives_task(self, store_group):
        task_id = await _create(store_group, "temp")
        stored = await delete_task_with_activity(
            store_group.conn,
            store_group.task_store,
            store_group.activity_store,
            task_id,
            _entry(task_id, ActivityAction.DELETED, 'Task "temp" deleted'),
        )

        assert stored is not None and stored.id is not None
        assert await store_group.task_store.get_task(task_id) is None
        entries = await store_group.activity_store.list_recent(task_id=task_id)
        assert entries[0].action == ActivityAction.DELETED


class TestTransaction:
    async def test_entry_failure_keeps_state_change(self, store_group):
        """活动条目写入失败只回滚条目，任务状态照常提交"""
        task_id = await _create(store_group, "primary")
        await store_group.conn.execute("DROP TABLE activity_log")
        await store_group.conn.commit()

        stored = await update_task_and_record_activity(
            store_group.conn,
            store_group.task_store,
            store_group.activity_store,
            task_id,
            {"status": TaskStatus.BLOCKED},
            datetime.now(UTC),
            _entry(task_id, ActivityAction.ERROR, "Dispatch failed: boom"),
        )

        assert stored is None
        task = await store_group.task_store.get_task(task_id)
        assert task.status == TaskStatus.BLOCKED

    async def test_update_failure_rolls_back_entry(self, store_group):
        task_id = await _create(store_group, "atomic")

        with pytest.raises(ValueError):
            await update_task_and_record_activity(
                store_group.conn,
                store_group.task_store,
                store_group.activity_store,
                task_id,
                {"not_a_column": 1},
                datetime.now(UTC),
                _entry(task_id, ActivityAction.UPDATED),
            )

        entries = await store_group.activity_store.get_entries_for_task(task_id)
        assert [e.action for e in entries] == [ActivityAction.CREATED]

    async def test_stored_entry_has_id(self, store_group):
        task_id = await _create(store_group, "ids")
        stored = await update_task_and_record_activity(
            store_group.conn,
            store_group.task_store,
            store_group.activity_store,
            task_id,
            {"notes": "x"},
            datetime.now(UTC),
            _entry(task_id, ActivityAction.UPDATED, "notes:  → x"),
        )
        assert stored.id is not None
        assert stored.task_id == task_id
