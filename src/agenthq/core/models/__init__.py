"""AgentHQ Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .activity import ActivityLogEntry
from .agent import AGENTS, AgentProfile
from .context import Client, Project
from .enums import (
    OUTCOME_ACTION,
    OUTCOME_STATUS,
    SETTLING_ACTIONS,
    ActivityAction,
    AgentId,
    OutcomeKind,
    TaskPriority,
    TaskStatus,
    is_dispatchable,
)
from .outcome import (
    CompletedOutcome,
    DispatchOutcome,
    FailedOutcome,
    NeedsInfoOutcome,
    UnstructuredOutcome,
)
from .task import EDITABLE_FIELDS, Task, TaskCreate, TaskUpdate

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "AgentId",
    "ActivityAction",
    "OutcomeKind",
    # 状态机
    "OUTCOME_STATUS",
    "OUTCOME_ACTION",
    "SETTLING_ACTIONS",
    "is_dispatchable",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "EDITABLE_FIELDS",
    # 上下文
    "Client",
    "Project",
    # Agent
    "AgentProfile",
    "AGENTS",
    # 活动日志
    "ActivityLogEntry",
    # 派发结果
    "DispatchOutcome",
    "NeedsInfoOutcome",
    "CompletedOutcome",
    "UnstructuredOutcome",
    "FailedOutcome",
]
