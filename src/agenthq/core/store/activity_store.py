"""ActivityStore SQLite 实现

活动日志 append-only：只允许插入，不允许更新或删除。
"""

from datetime import datetime

import aiosqlite

from ..models.activity import ActivityLogEntry
from ..models.enums import ActivityAction


class SqliteActivityStore:
    """ActivityStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_entry(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """追加活动日志（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。

        Returns:
            带数据库 id 的条目副本
        """
        cursor = await self._conn.execute(
            """
            INSERT INTO activity_log (task_id, client_id, project_id, agent,
                                      action, detail, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.task_id,
                entry.client_id,
                entry.project_id,
                entry.agent,
                entry.action.value,
                entry.detail,
                entry.created_at.isoformat(),
            ),
        )
        return entry.model_copy(update={"id": cursor.lastrowid})

    async def get_entries_for_task(self, task_id: int) -> list[ActivityLogEntry]:
        """查询指定任务的所有活动，按写入顺序正序"""
        cursor = await self._conn.execute(
            "SELECT * FROM activity_log WHERE task_id = ? ORDER BY id ASC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def list_recent(
        self,
        limit: int = 50,
        task_id: int | None = None,
    ) -> list[ActivityLogEntry]:
        """查询最近的活动，最新在前"""
        if task_id is not None:
            cursor = await self._conn.execute(
                "SELECT * FROM activity_log WHERE task_id = ? ORDER BY id DESC LIMIT ?",
                (task_id, limit),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT * FROM activity_log ORDER BY id DESC LIMIT ?",
                (limit,),
            )
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    @staticmethod
    def _row_to_entry(row: aiosqlite.Row) -> ActivityLogEntry:
        """将数据库行转换为 ActivityLogEntry 模型"""
        return ActivityLogEntry(
            id=row["id"],
            task_id=row["task_id"],
            client_id=row["client_id"],
            project_id=row["project_id"],
            agent=row["agent"],
            action=ActivityAction(row["action"]),
            detail=row["detail"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
