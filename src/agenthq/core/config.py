"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、活动日志截断长度、SSE 心跳间隔等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("AGENTHQ_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "AGENTHQ_DB_PATH",
        str(_get_base_dir() / "sqlite" / "agenthq.db"),
    )


# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("AGENTHQ_SSE_HEARTBEAT_INTERVAL", "15")
)

# 活动日志中问题/摘要的截断长度
ACTIVITY_DETAIL_MAX_CHARS: int = 200

# 活动日志中派发错误信息的截断长度
ERROR_DETAIL_MAX_CHARS: int = 300

# 活动列表默认/最大返回条数
ACTIVITY_PAGE_DEFAULT: int = 50
ACTIVITY_PAGE_MAX: int = 500
