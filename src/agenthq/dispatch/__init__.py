"""AgentHQ Dispatch -- Agent 进程调用抽象层

agenthq.dispatch 的公开接口导出。
"""

# 配置
from .config import MAX_DISPATCH_TIMEOUT_S, DispatchConfig, load_dispatch_config

# 核心组件
from .echo_runner import EchoAgentRunner

# 异常
from .exceptions import (
    AgentProcessError,
    AgentTimeoutError,
    AgentUnavailableError,
    DispatchError,
)
from .models import AgentRunResult
from .runner import AgentProcessRunner, AgentRunner


def build_runner(config: DispatchConfig) -> AgentRunner:
    """根据配置选择 Agent 调用实现"""
    if config.runner_mode == "echo":
        return EchoAgentRunner()
    return AgentProcessRunner(
        binary=config.agent_binary,
        timeout_s=config.timeout_s,
        extra_args=config.extra_args,
    )


__all__ = [
    "AgentRunResult",
    "AgentRunner",
    "AgentProcessRunner",
    "EchoAgentRunner",
    "build_runner",
    "DispatchConfig",
    "load_dispatch_config",
    "MAX_DISPATCH_TIMEOUT_S",
    "DispatchError",
    "AgentUnavailableError",
    "AgentTimeoutError",
    "AgentProcessError",
]
