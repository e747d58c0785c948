"""Task Domain Model

tasks 表是生命周期状态的唯一来源。
completed_at 非空当且仅当 status == done；dispatch_count 只增不减。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import AgentId, TaskPriority, TaskStatus


class Task(BaseModel):
    """Task 数据模型"""

    id: int = Field(description="自增主键")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.QUEUED, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    agent: AgentId = Field(default=AgentId.UNASSIGNED, description="负责的 Agent")
    category: str = Field(default="general", description="自由分类标签")
    client_id: int | None = Field(default=None, description="关联客户")
    project_id: int | None = Field(default=None, description="关联项目")
    due_date: str | None = Field(default=None, description="截止日期")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间，每次修改都会刷新")
    completed_at: datetime | None = Field(default=None, description="完成时间")
    notes: str = Field(default="", description="内部备注")
    requirements: str = Field(default="", description="提供给 Agent 的补充上下文")
    agent_questions: str = Field(default="", description="Agent 最近一次提出的问题")
    agent_output: str = Field(default="", description="Agent 最近一次输出")
    dispatch_count: int = Field(default=0, ge=0, description="派发次数")
    last_dispatched_at: datetime | None = Field(default=None, description="最近派发时间")

    # 只读关联字段（LEFT JOIN 得到）
    client_name: str | None = Field(default=None, description="客户名称")
    project_name: str | None = Field(default=None, description="项目名称")


class TaskCreate(BaseModel):
    """创建任务请求"""

    title: str = Field(min_length=1)
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    agent: AgentId = AgentId.UNASSIGNED
    category: str = "general"
    due_date: str | None = None
    client_id: int | None = None
    project_id: int | None = None
    requirements: str = ""


class TaskUpdate(BaseModel):
    """手动编辑请求 -- 只有显式传入的字段会被应用（exclude_unset）"""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    agent: AgentId | None = None
    category: str | None = None
    due_date: str | None = None
    notes: str | None = None
    requirements: str | None = None
    agent_questions: str | None = None
    agent_output: str | None = None
    client_id: int | None = None
    project_id: int | None = None

    def changes(self) -> dict:
        """显式传入的字段；可空外键允许显式置 None"""
        data = self.model_dump(exclude_unset=True)
        return {
            key: value
            for key, value in data.items()
            if value is not None or key in NULLABLE_EDIT_FIELDS
        }


# 手动编辑允许修改的字段
EDITABLE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "status",
    "priority",
    "agent",
    "category",
    "due_date",
    "notes",
    "requirements",
    "agent_questions",
    "agent_output",
    "client_id",
    "project_id",
)

NULLABLE_EDIT_FIELDS: frozenset[str] = frozenset({"due_date", "client_id", "project_id"})
