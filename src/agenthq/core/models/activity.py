"""ActivityLogEntry Domain Model

活动日志 append-only，不允许更新或删除。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ActivityAction


class ActivityLogEntry(BaseModel):
    """活动日志条目"""

    id: int | None = Field(default=None, description="写入后由数据库分配")
    task_id: int | None = Field(default=None, description="关联任务（任务删除后仍保留）")
    client_id: int | None = None
    project_id: int | None = None
    agent: str | None = Field(default=None, description="相关 Agent")
    action: ActivityAction
    detail: str = ""
    created_at: datetime
