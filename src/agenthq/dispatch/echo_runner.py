"""EchoAgentRunner -- Echo 模式 Agent 调用

不启动任何进程，回声 briefing 中的任务行并附带完成标记。
用于本地开发和没有 Agent CLI 的环境。
"""

import asyncio
import time

from .models import AgentRunResult


class EchoAgentRunner:
    """Echo 模式 Agent 调用

    回复格式:
        Echo: <briefing 中的 TASK 行>
        TASK_COMPLETE: echo mode (agent <agent>), no process was started
    """

    async def run(self, agent: str, briefing: str) -> AgentRunResult:
        start_time = time.monotonic()

        # 模拟少量延迟
        await asyncio.sleep(0.01)

        task_line = self._extract_task_line(briefing)
        reply = (
            f"Echo: {task_line}\n"
            f"TASK_COMPLETE: echo mode (agent {agent}), no process was started"
        )

        return AgentRunResult(
            stdout=reply,
            duration_ms=int((time.monotonic() - start_time) * 1000),
        )

    async def health_check(self) -> bool:
        return True

    @staticmethod
    def _extract_task_line(briefing: str) -> str:
        """取 briefing 中第一条 `TASK #` 行，找不到时返回 "(empty)" """
        for line in briefing.splitlines():
            if line.startswith("TASK #"):
                return line
        return "(empty)"
