"""任务更新 + 活动日志原子事务封装

任务字段更新与其活动条目在同一 SQLite 事务内提交。
活动条目写在 SAVEPOINT 内：条目写入失败只回滚条目本身，状态变更照常提交
（状态变更是主，日志是辅）。
"""

from datetime import datetime
from typing import Any

import aiosqlite
import structlog

from ..models.activity import ActivityLogEntry
from ..models.enums import ActivityAction
from ..models.task import TaskCreate
from .activity_store import SqliteActivityStore
from .task_store import SqliteTaskStore

log = structlog.get_logger()

_ACTIVITY_SAVEPOINT = "activity_entry"


async def update_task_and_record_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    task_id: int,
    fields: dict[str, Any],
    updated_at: datetime,
    entry: ActivityLogEntry | None,
    increment_dispatch_count: bool = False,
) -> ActivityLogEntry | None:
    """在同一事务内更新任务字段并追加活动条目

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        task_store: TaskStore 实例
        activity_store: ActivityStore 实例
        task_id: 任务 id
        fields: 要写入的任务字段
        updated_at: 更新时间
        entry: 要追加的活动条目，None 表示不记录
        increment_dispatch_count: 是否对 dispatch_count 自增

    Returns:
        已落盘的活动条目；未记录或记录失败时返回 None

    Raises:
        Exception: 任务更新失败时回滚整个事务并抛出
    """
    try:
        await task_store.update_task_fields(
            task_id,
            fields,
            updated_at,
            increment_dispatch_count=increment_dispatch_count,
        )
        stored = None
        if entry is not None:
            stored = await _append_entry_in_savepoint(conn, activity_store, entry)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return stored


async def _append_entry_in_savepoint(
    conn: aiosqlite.Connection,
    activity_store: SqliteActivityStore,
    entry: ActivityLogEntry,
) -> ActivityLogEntry | None:
    await conn.execute(f"SAVEPOINT {_ACTIVITY_SAVEPOINT}")
    try:
        stored = await activity_store.append_entry(entry)
    except Exception as e:
        await conn.execute(f"ROLLBACK TO SAVEPOINT {_ACTIVITY_SAVEPOINT}")
        await conn.execute(f"RELEASE SAVEPOINT {_ACTIVITY_SAVEPOINT}")
        log.warning(
            "activity_entry_dropped",
            task_id=entry.task_id,
            action=entry.action.value,
            error_type=type(e).__name__,
        )
        return None
    await conn.execute(f"RELEASE SAVEPOINT {_ACTIVITY_SAVEPOINT}")
    return stored


async def create_task_with_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    data: TaskCreate,
    now: datetime,
    detail: str,
) -> tuple[int, ActivityLogEntry | None]:
    """单事务写入新任务 + created 活动条目

    Returns:
        (task_id, 已落盘的活动条目或 None)
    """
    try:
        task_id = await task_store.create_task(data, now)
        entry = ActivityLogEntry(
            task_id=task_id,
            client_id=data.client_id,
            project_id=data.project_id,
            agent=data.agent.value,
            action=ActivityAction.CREATED,
            detail=detail,
            created_at=now,
        )
        stored = await _append_entry_in_savepoint(conn, activity_store, entry)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return task_id, stored


async def delete_task_with_activity(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    activity_store: SqliteActivityStore,
    task_id: int,
    entry: ActivityLogEntry,
) -> ActivityLogEntry | None:
    """单事务写入 deleted 活动条目并删除任务"""
    try:
        await task_store.delete_task(task_id)
        stored = await _append_entry_in_savepoint(conn, activity_store, entry)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return stored
