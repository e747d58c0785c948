"""TaskStore SQLite 实现

tasks 表是生命周期状态的唯一来源。
手动编辑与派发完成两条路径都做字段级无条件更新，按字段 last-write-wins。
注意：写方法均不自动提交事务，由调用方（transaction 模块）管理。
"""

from datetime import datetime
from enum import Enum
from typing import Any

import aiosqlite

from ..models.enums import TaskStatus
from ..models.task import Task, TaskCreate

# 允许通过 update_task_fields 写入的列
UPDATABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "status",
        "priority",
        "agent",
        "category",
        "client_id",
        "project_id",
        "due_date",
        "completed_at",
        "notes",
        "requirements",
        "agent_questions",
        "agent_output",
        "last_dispatched_at",
    }
)

_SELECT_WITH_NAMES = """
    SELECT t.*, c.name AS client_name, p.name AS project_name
    FROM tasks t
    LEFT JOIN clients c ON t.client_id = c.id
    LEFT JOIN projects p ON t.project_id = p.id
"""

_PRIORITY_ORDER = """
    CASE t.priority
        WHEN 'urgent' THEN 0 WHEN 'high' THEN 1
        WHEN 'medium' THEN 2 WHEN 'low' THEN 3
    END
"""


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, data: TaskCreate, now: datetime) -> int:
        """插入任务记录，返回新任务 id"""
        cursor = await self._conn.execute(
            """
            INSERT INTO tasks (title, description, priority, agent, category,
                               due_date, client_id, project_id, requirements,
                               status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data.title,
                data.description,
                data.priority.value,
                data.agent.value,
                data.category,
                data.due_date,
                data.client_id,
                data.project_id,
                data.requirements,
                TaskStatus.QUEUED.value,
                now.isoformat(),
                now.isoformat(),
            ),
        )
        return cursor.lastrowid

    async def get_task(self, task_id: int) -> Task | None:
        """根据 id 查询任务（含客户/项目名称）"""
        cursor = await self._conn.execute(
            f"{_SELECT_WITH_NAMES} WHERE t.id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        agent: str | None = None,
        status: str | None = None,
        client_id: int | None = None,
        project_id: int | None = None,
    ) -> list[Task]:
        """查询任务列表

        过滤值为 None 或 "all" 时忽略；按优先级、再按创建时间倒序排列。
        """
        clauses: list[str] = []
        params: list[Any] = []
        if agent and agent != "all":
            clauses.append("t.agent = ?")
            params.append(agent)
        if status and status != "all":
            clauses.append("t.status = ?")
            params.append(status)
        if client_id is not None:
            clauses.append("t.client_id = ?")
            params.append(client_id)
        if project_id is not None:
            clauses.append("t.project_id = ?")
            params.append(project_id)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"{_SELECT_WITH_NAMES}{where} ORDER BY {_PRIORITY_ORDER}, t.created_at DESC, t.id DESC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task_fields(
        self,
        task_id: int,
        fields: dict[str, Any],
        updated_at: datetime,
        increment_dispatch_count: bool = False,
    ) -> None:
        """字段级更新，updated_at 总是刷新

        Args:
            task_id: 任务 id
            fields: 列名 -> 新值，列名必须在 UPDATABLE_COLUMNS 内
            updated_at: 更新时间
            increment_dispatch_count: 是否在 SQL 中对 dispatch_count 自增

        Raises:
            ValueError: 出现不允许更新的列名
        """
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown task columns: {sorted(unknown)}")

        assignments = [f"{column} = ?" for column in fields]
        params = [_to_db_value(value) for value in fields.values()]
        if increment_dispatch_count:
            assignments.append("dispatch_count = dispatch_count + 1")
        assignments.append("updated_at = ?")
        params.append(updated_at.isoformat())
        params.append(task_id)

        await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?",
            params,
        )

    async def delete_task(self, task_id: int) -> None:
        """删除任务记录"""
        await self._conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        data = dict(row)
        for column in ("created_at", "updated_at", "completed_at", "last_dispatched_at"):
            if data.get(column):
                data[column] = datetime.fromisoformat(data[column])
        return Task(**data)


def _to_db_value(value: Any) -> Any:
    """datetime 以 ISO 字符串落库；枚举落库为其字符串值"""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
