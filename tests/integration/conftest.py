"""集成测试共享 fixture -- 真实子进程 Agent（脚本）+ 完整 gateway"""

import os
import stat
import sys
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from agenthq.core.store import create_store_group
from agenthq.dispatch import AgentProcessRunner
from agenthq.gateway.services.activity_hub import ActivityHub
from agenthq.gateway.services.dispatch_service import DispatchService
from httpx import ASGITransport, AsyncClient

# 假 Agent：按 mode 文件决定行为，回复包在 JSON 信封里
_FAKE_AGENT = """
import json, pathlib, sys, time

base = pathlib.Path({base!r})
mode_file = base / "mode"
mode = mode_file.read_text() if mode_file.exists() else "reply"
if mode == "sleep":
    time.sleep(30)
if mode == "fail":
    sys.stderr.write("agent crashed")
    sys.exit(2)
(base / "last_briefing").write_text(sys.argv[sys.argv.index("--message") + 1])
print(json.dumps({{"reply": (base / "reply.txt").read_text()}}))
"""


class FakeAgent:
    """控制假 Agent 脚本的行为"""

    def __init__(self, base: Path) -> None:
        self.base = base
        self.binary = str(base / "openclaw")
        script = Path(self.binary)
        script.write_text(f"#!{sys.executable}\n" + _FAKE_AGENT.format(base=str(base)))
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    def reply_with(self, text: str) -> None:
        (self.base / "reply.txt").write_text(text)
        (self.base / "mode").write_text("reply")

    def hang(self) -> None:
        (self.base / "mode").write_text("sleep")

    def crash(self) -> None:
        (self.base / "mode").write_text("fail")

    @property
    def last_briefing(self) -> str:
        return (self.base / "last_briefing").read_text()


@pytest_asyncio.fixture
async def fake_agent(tmp_path: Path) -> FakeAgent:
    agent_dir = tmp_path / "agent"
    agent_dir.mkdir()
    return FakeAgent(agent_dir)


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, fake_agent: FakeAgent):
    """集成测试用 FastAPI app，Agent 超时 2 秒"""
    os.environ["AGENTHQ_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from agenthq.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"))
    activity_hub = ActivityHub()
    app.state.store_group = store_group
    app.state.activity_hub = activity_hub
    app.state.dispatch_service = DispatchService(
        store_group,
        AgentProcessRunner(binary=fake_agent.binary, timeout_s=2),
        activity_hub=activity_hub,
    )

    yield app

    await app.state.dispatch_service.shutdown()
    await store_group.conn.close()
    os.environ.pop("AGENTHQ_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
