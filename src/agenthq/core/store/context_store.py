"""ContextStore SQLite 实现 -- 客户/项目上下文的只读访问

核心逻辑只读取这两类记录用于 briefing；create_* 仅供初始化数据和测试使用。
"""

from datetime import datetime

import aiosqlite

from ..models.context import Client, Project


class SqliteContextStore:
    """客户/项目上下文的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def get_client(self, client_id: int) -> Client | None:
        """根据 id 查询客户上下文"""
        cursor = await self._conn.execute(
            """
            SELECT id, name, platform, shopify_store, wp_login_url, notes
            FROM clients WHERE id = ?
            """,
            (client_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Client(**dict(row))

    async def get_project(self, project_id: int) -> Project | None:
        """根据 id 查询项目上下文"""
        cursor = await self._conn.execute(
            """
            SELECT id, client_id, name, project_type, description
            FROM projects WHERE id = ?
            """,
            (project_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Project(**dict(row))

    async def create_client(
        self,
        name: str,
        now: datetime,
        platform: str = "",
        shopify_store: str = "",
        wp_login_url: str = "",
        notes: str = "",
    ) -> int:
        """插入客户记录并提交，返回 id"""
        cursor = await self._conn.execute(
            """
            INSERT INTO clients (name, platform, shopify_store, wp_login_url, notes,
                                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (name, platform, shopify_store, wp_login_url, notes,
             now.isoformat(), now.isoformat()),
        )
        await self._conn.commit()
        return cursor.lastrowid

    async def create_project(
        self,
        name: str,
        now: datetime,
        client_id: int | None = None,
        project_type: str = "",
        description: str = "",
    ) -> int:
        """插入项目记录并提交，返回 id"""
        cursor = await self._conn.execute(
            """
            INSERT INTO projects (client_id, name, project_type, description,
                                  created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (client_id, name, project_type, description,
             now.isoformat(), now.isoformat()),
        )
        await self._conn.commit()
        return cursor.lastrowid
