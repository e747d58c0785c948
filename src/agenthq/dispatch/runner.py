"""AgentProcessRunner -- 以独立进程调用外部 Agent

briefing 作为参数向量中的单个元素传给进程，不经过 shell，
任何用户输入的文本（标题、备注、需求）都不会被当作命令语法解析。
"""

import asyncio
import time
from typing import Protocol

import structlog

from .exceptions import AgentProcessError, AgentTimeoutError, AgentUnavailableError
from .models import AgentRunResult

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5


class AgentRunner(Protocol):
    """Agent 调用接口"""

    async def run(self, agent: str, briefing: str) -> AgentRunResult:
        """调用 Agent 并等待其结束

        Raises:
            DispatchError: 进程无法启动、非零退出或超时
        """
        ...

    async def health_check(self) -> bool:
        """Agent 运行环境是否可用"""
        ...


class AgentProcessRunner:
    """通过 asyncio 子进程调用 Agent CLI"""

    def __init__(
        self,
        binary: str = "openclaw",
        timeout_s: float = 600,
        extra_args: list[str] | None = None,
    ) -> None:
        """
        Args:
            binary: Agent 可执行文件
            timeout_s: 最长运行时间（秒）
            extra_args: 追加在 --message 之后的参数
        """
        self._binary = binary
        self._timeout_s = timeout_s
        self._extra_args = list(extra_args) if extra_args is not None else ["--local", "--json"]

    @property
    def binary(self) -> str:
        return self._binary

    def build_argv(self, agent: str, briefing: str) -> list[str]:
        """构建参数向量，briefing 是其中一个不透明元素"""
        return [
            self._binary,
            "agent",
            "--agent",
            agent,
            "--message",
            briefing,
            *self._extra_args,
        ]

    async def run(self, agent: str, briefing: str) -> AgentRunResult:
        """启动 Agent 进程并等待结束

        Args:
            agent: Agent 标识
            briefing: 发给 Agent 的 briefing

        Returns:
            AgentRunResult

        Raises:
            AgentUnavailableError: 可执行文件不存在或无法执行
            AgentTimeoutError: 超过最长运行时间（进程已被 kill）
            AgentProcessError: 非零退出码
        """
        argv = self.build_argv(agent, briefing)
        start_time = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise AgentUnavailableError(self._binary, e) from e

        log.info(
            "agent_process_started",
            agent=agent,
            pid=process.pid,
            briefing_length=len(briefing),
            timeout_s=self._timeout_s,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout_s
            )
        except TimeoutError:
            await self._kill(process)
            log.warning(
                "agent_process_timeout",
                agent=agent,
                pid=process.pid,
                timeout_s=self._timeout_s,
            )
            raise AgentTimeoutError(self._timeout_s) from None
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        duration_ms = int((time.monotonic() - start_time) * 1000)
        stdout_text = stdout.decode("utf-8", errors="replace")
        stderr_text = stderr.decode("utf-8", errors="replace")

        log.info(
            "agent_process_finished",
            agent=agent,
            pid=process.pid,
            exit_code=process.returncode,
            duration_ms=duration_ms,
            stdout_length=len(stdout_text),
        )

        if process.returncode != 0:
            raise AgentProcessError(process.returncode, stderr_text)

        return AgentRunResult(
            stdout=stdout_text,
            stderr=stderr_text,
            exit_code=process.returncode,
            duration_ms=duration_ms,
        )

    async def health_check(self) -> bool:
        """运行 `<binary> health`，退出码为 0 视为可用"""
        try:
            process = await asyncio.create_subprocess_exec(
                self._binary,
                "health",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError:
            return False

        try:
            await asyncio.wait_for(process.wait(), timeout=HEALTH_CHECK_TIMEOUT_S)
        except TimeoutError:
            await self._kill(process)
            return False
        return process.returncode == 0

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        """终止并回收进程"""
        try:
            process.kill()
        except ProcessLookupError:
            pass  # 已经退出
        await process.wait()
