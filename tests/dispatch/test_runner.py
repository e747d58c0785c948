"""AgentProcessRunner 测试 -- 使用真实子进程（假 Agent 脚本）

测试内容：
1. 参数向量：briefing 作为单个不透明参数传递，不经过 shell
2. 非零退出 / 超时 / 可执行文件缺失
3. 取消时 kill 子进程
4. health_check
"""

import asyncio
import json
import os
import time
from pathlib import Path

import pytest
from agenthq.dispatch import (
    AgentProcessError,
    AgentProcessRunner,
    AgentTimeoutError,
    AgentUnavailableError,
    EchoAgentRunner,
)

ARGV_ECHO = """
import json, sys
print(json.dumps({"argv": sys.argv[1:], "stdin": sys.stdin.read()}))
"""


class TestArgv:
    def test_build_argv(self):
        runner = AgentProcessRunner(binary="openclaw")
        assert runner.build_argv("bernard", "do it") == [
            "openclaw",
            "agent",
            "--agent",
            "bernard",
            "--message",
            "do it",
            "--local",
            "--json",
        ]

    def test_custom_extra_args(self):
        runner = AgentProcessRunner(binary="x", extra_args=[])
        assert runner.build_argv("vale", "b")[-1] == "b"

    async def test_hostile_briefing_is_one_argument(self, make_agent_script, tmp_path: Path):
        """引号、换行、命令替换都原样到达 Agent，不会被执行"""
        canary = tmp_path / "pwned"
        briefing = (
            f'TASK #1: "quoted" \'single\'\n$(touch {canary})\n`touch {canary}`\n'
            f"; touch {canary} && echo done | cat\n%s {{}} \\n"
        )
        runner = AgentProcessRunner(binary=make_agent_script(ARGV_ECHO), timeout_s=30)

        result = await runner.run("bernard", briefing)

        payload = json.loads(result.stdout)
        assert payload["argv"] == [
            "agent",
            "--agent",
            "bernard",
            "--message",
            briefing,
            "--local",
            "--json",
        ]
        assert not canary.exists()

    async def test_stdin_is_closed(self, make_agent_script):
        runner = AgentProcessRunner(binary=make_agent_script(ARGV_ECHO), timeout_s=30)
        result = await runner.run("claw", "b")
        assert json.loads(result.stdout)["stdin"] == ""
        assert result.exit_code == 0
        assert result.duration_ms >= 0


class TestFailures:
    async def test_non_zero_exit(self, make_agent_script):
        script = make_agent_script(
            "import sys\nsys.stderr.write('gateway unreachable\\n')\nsys.exit(3)\n"
        )
        runner = AgentProcessRunner(binary=script, timeout_s=30)

        with pytest.raises(AgentProcessError) as exc_info:
            await runner.run("gumbo", "b")

        assert exc_info.value.exit_code == 3
        assert "exited with code 3" in str(exc_info.value)
        assert "gateway unreachable" in str(exc_info.value)

    async def test_stderr_tail_bounded(self):
        error = AgentProcessError(1, "x" * 5000)
        assert len(str(error)) < 600

    async def test_timeout_kills_process(self, make_agent_script):
        script = make_agent_script("import time\ntime.sleep(30)\n")
        runner = AgentProcessRunner(binary=script, timeout_s=0.5)

        started = time.monotonic()
        with pytest.raises(AgentTimeoutError) as exc_info:
            await runner.run("bernard", "b")

        assert time.monotonic() - started < 10
        assert "timed out after 0.5s" in str(exc_info.value)

    async def test_missing_binary(self, tmp_path: Path):
        runner = AgentProcessRunner(binary=str(tmp_path / "does-not-exist"))
        with pytest.raises(AgentUnavailableError):
            await runner.run("bernard", "b")

    async def test_cancel_kills_process(self, make_agent_script, tmp_path: Path):
        pid_file = tmp_path / "agent.pid"
        script = make_agent_script(
            f"import os, time\nopen({str(pid_file)!r}, 'w').write(str(os.getpid()))\n"
            "time.sleep(30)\n"
        )
        runner = AgentProcessRunner(binary=script, timeout_s=60)
        running = asyncio.create_task(runner.run("bernard", "b"))

        for _ in range(100):
            if pid_file.exists() and pid_file.read_text():
                break
            await asyncio.sleep(0.05)
        pid = int(pid_file.read_text())

        running.cancel()
        with pytest.raises(asyncio.CancelledError):
            await running

        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)


class TestHealthCheck:
    async def test_healthy(self, make_agent_script):
        script = make_agent_script("import sys\nsys.exit(0 if sys.argv[1:] == ['health'] else 1)\n")
        assert await AgentProcessRunner(binary=script).health_check() is True

    async def test_unhealthy_exit(self, make_agent_script):
        script = make_agent_script("import sys\nsys.exit(2)\n")
        assert await AgentProcessRunner(binary=script).health_check() is False

    async def test_missing_binary(self, tmp_path: Path):
        runner = AgentProcessRunner(binary=str(tmp_path / "nope"))
        assert await runner.health_check() is False


class TestEchoRunner:
    async def test_reply_completes(self):
        runner = EchoAgentRunner()
        result = await runner.run("vale", "=== TASK BRIEFING ===\nTASK #4: Write copy\nPRIORITY: low")

        assert result.stdout.startswith("Echo: TASK #4: Write copy\n")
        assert "TASK_COMPLETE:" in result.stdout
        assert "vale" in result.stdout

    async def test_no_task_line(self):
        result = await EchoAgentRunner().run("vale", "")
        assert result.stdout.startswith("Echo: (empty)")

    async def test_health(self):
        assert await EchoAgentRunner().health_check() is True
