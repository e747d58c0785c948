"""DispatchConfig -- Agent 调用配置加载

从环境变量加载配置，不硬编码 Agent 可执行文件路径。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()

# Agent 进程最长运行时间上限（秒）
MAX_DISPATCH_TIMEOUT_S = 600


class DispatchConfig(BaseModel):
    """Dispatch 包配置 -- 从环境变量加载

    环境变量:
        AGENTHQ_RUNNER_MODE: 运行模式（process/echo）
        AGENTHQ_AGENT_BINARY: Agent 可执行文件（默认 openclaw）
        AGENTHQ_AGENT_EXTRA_ARGS: 追加参数，空白分隔（默认 "--local --json"）
        AGENTHQ_DISPATCH_TIMEOUT_S: 单次派发超时（秒，默认 600，上限 600）
    """

    runner_mode: Literal["process", "echo"] = Field(
        default="process",
        description="运行模式：process 启动真实 Agent 进程 / echo 不启动进程",
    )
    agent_binary: str = Field(
        default="openclaw",
        min_length=1,
        description="Agent 可执行文件",
    )
    extra_args: list[str] = Field(
        default_factory=lambda: ["--local", "--json"],
        description="追加在 --message 之后的参数",
    )
    timeout_s: int = Field(
        default=MAX_DISPATCH_TIMEOUT_S,
        ge=1,
        le=MAX_DISPATCH_TIMEOUT_S,
        description="Agent 进程最长运行时间（秒）",
    )


def load_dispatch_config() -> DispatchConfig:
    """从环境变量加载 Dispatch 配置

    环境变量映射:
        AGENTHQ_RUNNER_MODE -> runner_mode (默认 "process")
        AGENTHQ_AGENT_BINARY -> agent_binary (默认 "openclaw")
        AGENTHQ_AGENT_EXTRA_ARGS -> extra_args (默认 ["--local", "--json"])
        AGENTHQ_DISPATCH_TIMEOUT_S -> timeout_s (默认 600)

    Returns:
        DispatchConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("AGENTHQ_RUNNER_MODE"):
        kwargs["runner_mode"] = val

    if val := os.environ.get("AGENTHQ_AGENT_BINARY"):
        kwargs["agent_binary"] = val

    # 允许显式设为空字符串以去掉所有追加参数
    val = os.environ.get("AGENTHQ_AGENT_EXTRA_ARGS")
    if val is not None:
        kwargs["extra_args"] = val.split()

    if val := os.environ.get("AGENTHQ_DISPATCH_TIMEOUT_S"):
        try:
            kwargs["timeout_s"] = int(val)
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="AGENTHQ_DISPATCH_TIMEOUT_S",
                value=val,
                fallback=MAX_DISPATCH_TIMEOUT_S,
            )
            # 使用默认值，不阻塞启动

    return DispatchConfig(**kwargs)
