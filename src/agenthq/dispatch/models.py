"""Dispatch 数据模型"""

from pydantic import BaseModel, Field


class AgentRunResult(BaseModel):
    """一次成功的 Agent 调用结果（退出码为 0）"""

    stdout: str = Field(description="标准输出（原始回复）")
    stderr: str = Field(default="", description="标准错误输出")
    exit_code: int = Field(default=0)
    duration_ms: int = Field(default=0, description="调用耗时（毫秒）")
