"""AgentHQ Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from ..models.context import Client, Project
from ..models.task import Task
from .activity_store import SqliteActivityStore
from .context_store import SqliteContextStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import (
    create_task_with_activity,
    delete_task_with_activity,
    update_task_and_record_activity,
)


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.task_store = SqliteTaskStore(conn)
        self.context_store = SqliteContextStore(conn)
        self.activity_store = SqliteActivityStore(conn)
        # 共享连接上的写事务必须串行，否则不同协程的语句会混入同一事务
        self.write_lock = asyncio.Lock()

    async def get_task_context(self, task: Task) -> tuple[Client | None, Project | None]:
        """读取任务关联的客户/项目上下文（只读，用于 briefing）"""
        client = None
        project = None
        if task.client_id is not None:
            client = await self.context_store.get_client(task.client_id)
        if task.project_id is not None:
            project = await self.context_store.get_project(task.project_id)
        return client, project


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteContextStore",
    "SqliteActivityStore",
    "init_db",
    "update_task_and_record_activity",
    "create_task_with_activity",
    "delete_task_with_activity",
]
