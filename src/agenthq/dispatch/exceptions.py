"""Dispatch 异常体系

这些异常只在后台派发流程内部流转，最终都被转换为任务的 blocked 状态，
不会同步返回给发起派发的调用方。
"""


class DispatchError(Exception):
    """Dispatch 包基础异常"""


class AgentUnavailableError(DispatchError):
    """Agent 可执行文件不存在或无法启动"""

    def __init__(self, binary: str, original_error: Exception) -> None:
        """
        Args:
            binary: 尝试启动的可执行文件
            original_error: 原始异常
        """
        super().__init__(f"agent binary could not be started: {binary} ({original_error})")
        self.binary = binary
        self.original_error = original_error


class AgentTimeoutError(DispatchError):
    """Agent 进程超过最长运行时间，已被终止"""

    def __init__(self, timeout_s: float) -> None:
        super().__init__(f"agent process timed out after {timeout_s:g}s and was killed")
        self.timeout_s = timeout_s


class AgentProcessError(DispatchError):
    """Agent 进程以非零退出码结束"""

    # 错误信息中保留的 stderr 尾部长度
    STDERR_TAIL_CHARS = 500

    def __init__(self, exit_code: int, stderr: str = "") -> None:
        """
        Args:
            exit_code: 进程退出码
            stderr: 进程标准错误输出
        """
        tail = stderr.strip()[-self.STDERR_TAIL_CHARS :]
        message = f"agent process exited with code {exit_code}"
        if tail:
            message = f"{message}: {tail}"
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr
