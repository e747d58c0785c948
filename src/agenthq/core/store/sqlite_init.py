"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

_CLIENTS_DDL = """
CREATE TABLE IF NOT EXISTS clients (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT NOT NULL,
    platform        TEXT NOT NULL DEFAULT '',
    shopify_store   TEXT NOT NULL DEFAULT '',
    wp_login_url    TEXT NOT NULL DEFAULT '',
    notes           TEXT NOT NULL DEFAULT '',
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL
);
"""

_PROJECTS_DDL = """
CREATE TABLE IF NOT EXISTS projects (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    client_id       INTEGER,
    name            TEXT NOT NULL,
    project_type    TEXT NOT NULL DEFAULT '',
    description     TEXT NOT NULL DEFAULT '',
    created_at      TEXT NOT NULL,
    updated_at      TEXT NOT NULL,

    FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE CASCADE
);
"""

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    title               TEXT NOT NULL,
    description         TEXT NOT NULL DEFAULT '',
    status              TEXT NOT NULL DEFAULT 'queued'
        CHECK(status IN ('queued','in_progress','needs_info','done','blocked')),
    priority            TEXT NOT NULL DEFAULT 'medium'
        CHECK(priority IN ('low','medium','high','urgent')),
    agent               TEXT NOT NULL DEFAULT 'unassigned'
        CHECK(agent IN ('claw','bernard','vale','gumbo','unassigned')),
    category            TEXT NOT NULL DEFAULT 'general',
    client_id           INTEGER,
    project_id          INTEGER,
    due_date            TEXT,
    created_at          TEXT NOT NULL,
    updated_at          TEXT NOT NULL,
    completed_at        TEXT,
    notes               TEXT NOT NULL DEFAULT '',
    requirements        TEXT NOT NULL DEFAULT '',
    agent_questions     TEXT NOT NULL DEFAULT '',
    agent_output        TEXT NOT NULL DEFAULT '',
    dispatch_count      INTEGER NOT NULL DEFAULT 0,
    last_dispatched_at  TEXT,

    FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE SET NULL,
    FOREIGN KEY (project_id) REFERENCES projects(id) ON DELETE SET NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_agent ON tasks(agent);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
]

# activity_log 表 append-only；task_id 不加外键，任务删除后审计记录仍保留
_ACTIVITY_DDL = """
CREATE TABLE IF NOT EXISTS activity_log (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id     INTEGER,
    client_id   INTEGER,
    project_id  INTEGER,
    agent       TEXT,
    action      TEXT NOT NULL,
    detail      TEXT NOT NULL DEFAULT '',
    created_at  TEXT NOT NULL
);
"""

_ACTIVITY_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_activity_task_id ON activity_log(task_id, id);",
    "CREATE INDEX IF NOT EXISTS idx_activity_created_at ON activity_log(created_at DESC);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_CLIENTS_DDL)
    await conn.execute(_PROJECTS_DDL)
    await conn.execute(_TASKS_DDL)
    await conn.execute(_ACTIVITY_DDL)

    for idx_sql in _TASKS_INDEXES + _ACTIVITY_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
