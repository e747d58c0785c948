"""派发结果 tagged variant

后台 Agent 调用的结果统一建模为四种变体之一，由单个 continuation 消费。
"""

from typing import Literal

from pydantic import BaseModel, Field


class NeedsInfoOutcome(BaseModel):
    """Agent 请求更多信息"""

    kind: Literal["needs_info"] = "needs_info"
    output: str = Field(description="有效输出全文")
    questions: str = Field(description="提取出的问题文本")


class CompletedOutcome(BaseModel):
    """Agent 声明任务完成"""

    kind: Literal["completed"] = "completed"
    output: str
    summary: str = Field(description="提取出的完成摘要")


class UnstructuredOutcome(BaseModel):
    """Agent 未使用任何标记 -- 保存输出供人工查看，状态不变"""

    kind: Literal["unstructured"] = "unstructured"
    output: str


class FailedOutcome(BaseModel):
    """Agent 进程失败（非零退出、超时、无法启动）"""

    kind: Literal["failed"] = "failed"
    error_message: str


DispatchOutcome = NeedsInfoOutcome | CompletedOutcome | UnstructuredOutcome | FailedOutcome
