"""Core 异常体系

NotFound / InvalidState 两类错误会同步返回给调用方；
派发进程失败不在此列，它只会在后台被转换为 blocked 状态。
"""


class TaskError(Exception):
    """任务操作基础异常"""

    def __init__(self, task_id: int, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id


class TaskNotFoundError(TaskError):
    """任务不存在"""

    def __init__(self, task_id: int) -> None:
        super().__init__(task_id, f"Task with id {task_id} does not exist")


class DispatchRejectedError(TaskError):
    """派发前置条件不满足（未分配 Agent），无状态变化、不启动进程"""

    def __init__(self, task_id: int, reason: str) -> None:
        super().__init__(task_id, reason)
        self.reason = reason


class InvalidReferenceError(Exception):
    """client_id / project_id 指向不存在的记录"""
