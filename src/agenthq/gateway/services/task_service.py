"""TaskService -- 任务创建/查询/手动编辑/删除业务逻辑

手动编辑路径与派发路径共享 completed_at 规则（见 agenthq.core.lifecycle），
但不经过 Agent：直接写字段，再追加一条 updated 活动条目。
"""

from datetime import UTC, datetime

import aiosqlite
import structlog
from agenthq.core.config import ACTIVITY_PAGE_DEFAULT
from agenthq.core.exceptions import InvalidReferenceError, TaskNotFoundError
from agenthq.core.lifecycle import manual_edit_fields, summarize_changes
from agenthq.core.models import (
    ActivityAction,
    ActivityLogEntry,
    Task,
    TaskCreate,
    TaskUpdate,
)
from agenthq.core.store import (
    StoreGroup,
    create_task_with_activity,
    delete_task_with_activity,
    update_task_and_record_activity,
)

log = structlog.get_logger()


class TaskService:
    """任务业务服务（每个请求创建一个实例）"""

    def __init__(self, store_group: StoreGroup, activity_hub=None) -> None:
        self._stores = store_group
        self._activity_hub = activity_hub

    async def create_task(self, data: TaskCreate) -> Task:
        """创建任务，同一事务内写入 created 活动条目

        Raises:
            InvalidReferenceError: client_id / project_id 不存在
        """
        now = datetime.now(UTC)
        try:
            async with self._stores.write_lock:
                task_id, entry = await create_task_with_activity(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.activity_store,
                    data,
                    now,
                    detail=f'Task "{data.title}" created',
                )
        except aiosqlite.IntegrityError as e:
            raise InvalidReferenceError(str(e)) from e

        log.info("task_created", task_id=task_id, agent=data.agent.value)
        await self._broadcast(entry)

        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def get_task(self, task_id: int) -> Task | None:
        return await self._stores.task_store.get_task(task_id)

    async def list_tasks(
        self,
        agent: str | None = None,
        status: str | None = None,
        client_id: int | None = None,
        project_id: int | None = None,
    ) -> list[Task]:
        return await self._stores.task_store.list_tasks(
            agent=agent,
            status=status,
            client_id=client_id,
            project_id=project_id,
        )

    async def get_task_activity(self, task_id: int) -> list[ActivityLogEntry]:
        """任务的全部活动条目，按写入顺序"""
        return await self._stores.activity_store.get_entries_for_task(task_id)

    async def list_activity(
        self,
        limit: int = ACTIVITY_PAGE_DEFAULT,
        task_id: int | None = None,
    ) -> list[ActivityLogEntry]:
        return await self._stores.activity_store.list_recent(limit=limit, task_id=task_id)

    async def update_task(self, task_id: int, update: TaskUpdate) -> Task | None:
        """手动编辑任务

        - 只应用显式传入且在允许列表内的字段
        - status 变化时按 done / 非 done 写入或清空 completed_at
        - needs_info 任务补充 requirements 且未指定 status 时自动回到 queued
        - 有字段实际变化时追加一条 updated 活动条目

        Returns:
            更新后的任务；任务不存在返回 None

        Raises:
            InvalidReferenceError: client_id / project_id 不存在
        """
        existing = await self._stores.task_store.get_task(task_id)
        if existing is None:
            return None

        changes = update.changes()
        if not changes:
            return existing

        now = datetime.now(UTC)
        fields = manual_edit_fields(existing, changes, now)
        detail = summarize_changes(existing, fields)

        entry = None
        if detail:
            entry = ActivityLogEntry(
                task_id=task_id,
                client_id=fields.get("client_id", existing.client_id),
                project_id=fields.get("project_id", existing.project_id),
                agent=str(fields.get("agent", existing.agent)),
                action=ActivityAction.UPDATED,
                detail=detail,
                created_at=now,
            )

        try:
            async with self._stores.write_lock:
                stored = await update_task_and_record_activity(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.activity_store,
                    task_id,
                    fields,
                    now,
                    entry,
                )
        except aiosqlite.IntegrityError as e:
            raise InvalidReferenceError(str(e)) from e

        if "status" in fields and fields["status"] != existing.status:
            log.info(
                "task_status_edited",
                task_id=task_id,
                from_status=existing.status.value,
                to_status=str(fields["status"]),
            )
        await self._broadcast(stored)

        return await self._stores.task_store.get_task(task_id)

    async def delete_task(self, task_id: int) -> bool:
        """删除任务，deleted 活动条目在任务删除后仍保留

        Returns:
            任务存在并已删除返回 True
        """
        existing = await self._stores.task_store.get_task(task_id)
        if existing is None:
            return False

        entry = ActivityLogEntry(
            task_id=task_id,
            client_id=existing.client_id,
            project_id=existing.project_id,
            agent=existing.agent.value,
            action=ActivityAction.DELETED,
            detail=f'Task "{existing.title}" deleted',
            created_at=datetime.now(UTC),
        )
        async with self._stores.write_lock:
            stored = await delete_task_with_activity(
                self._stores.conn,
                self._stores.task_store,
                self._stores.activity_store,
                task_id,
                entry,
            )

        log.info("task_deleted", task_id=task_id)
        await self._broadcast(stored)
        return True

    async def _broadcast(self, entry: ActivityLogEntry | None) -> None:
        if self._activity_hub and entry is not None:
            await self._activity_hub.broadcast(entry)
