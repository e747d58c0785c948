"""枚举定义 -- 任务状态、优先级、Agent、活动类型

包含 TaskStatus 状态机、TaskPriority、AgentId、ActivityAction、OutcomeKind 枚举，
以及派发结果到目标状态的映射 OUTCOME_STATUS。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机

    所有状态都可从 queued 到达，也都可以回到 queued。
    done / blocked 仅在业务上视为终态，仍可手动修改。
    """

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    NEEDS_INFO = "needs_info"
    DONE = "done"
    BLOCKED = "blocked"


class TaskPriority(StrEnum):
    """任务优先级"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AgentId(StrEnum):
    """已知 Agent 标识 + unassigned 哨兵值"""

    CLAW = "claw"
    BERNARD = "bernard"
    VALE = "vale"
    GUMBO = "gumbo"
    UNASSIGNED = "unassigned"


class ActivityAction(StrEnum):
    """活动日志动作标签"""

    CREATED = "created"
    DISPATCHED = "dispatched"
    NEEDS_INFO = "needs_info"
    COMPLETED = "completed"
    OUTPUT = "output"
    ERROR = "error"
    UPDATED = "updated"
    DELETED = "deleted"


class OutcomeKind(StrEnum):
    """一次派发的最终结果类型"""

    NEEDS_INFO = "needs_info"
    COMPLETED = "completed"
    UNSTRUCTURED = "unstructured"
    FAILED = "failed"


# 派发结果 -> 目标状态；None 表示保持当前状态不变
OUTCOME_STATUS: dict[OutcomeKind, TaskStatus | None] = {
    OutcomeKind.NEEDS_INFO: TaskStatus.NEEDS_INFO,
    OutcomeKind.COMPLETED: TaskStatus.DONE,
    OutcomeKind.UNSTRUCTURED: None,
    OutcomeKind.FAILED: TaskStatus.BLOCKED,
}

# 派发结果 -> 活动日志动作
OUTCOME_ACTION: dict[OutcomeKind, ActivityAction] = {
    OutcomeKind.NEEDS_INFO: ActivityAction.NEEDS_INFO,
    OutcomeKind.COMPLETED: ActivityAction.COMPLETED,
    OutcomeKind.UNSTRUCTURED: ActivityAction.OUTPUT,
    OutcomeKind.FAILED: ActivityAction.ERROR,
}

# 结束一次派发的活动动作（SSE 流据此判断 final）
SETTLING_ACTIONS: frozenset[ActivityAction] = frozenset(OUTCOME_ACTION.values())


def is_dispatchable(agent: AgentId) -> bool:
    """未分配 Agent 的任务不能派发"""
    return agent != AgentId.UNASSIGNED
