"""gateway 测试配置 -- FastAPI app + httpx AsyncClient + 可控的假 Agent"""

import asyncio
import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
import structlog
from agenthq.core.store import create_store_group
from agenthq.dispatch import AgentRunResult
from agenthq.gateway.services.activity_hub import ActivityHub
from agenthq.gateway.services.dispatch_service import DispatchService
from httpx import ASGITransport, AsyncClient


class ScriptedRunner:
    """按脚本返回回复的假 Agent

    replies 中的元素依次消费：字符串作为 stdout 返回，异常实例直接抛出。
    release 未 set 时 run() 会挂起，用于观察派发进行中的状态。
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.replies: list = []
        self.default_reply = "TASK_COMPLETE: done"
        self.release = asyncio.Event()
        self.release.set()
        self.healthy = True
        # 每次调用时的 structlog 上下文，用于检查日志关联字段
        self.log_contexts: list[dict] = []

    async def run(self, agent: str, briefing: str) -> AgentRunResult:
        self.calls.append((agent, briefing))
        self.log_contexts.append(structlog.contextvars.get_contextvars())
        await self.release.wait()
        reply = self.replies.pop(0) if self.replies else self.default_reply
        if isinstance(reply, BaseException):
            raise reply
        return AgentRunResult(stdout=reply)

    async def health_check(self) -> bool:
        return self.healthy


@pytest.fixture
def scripted_runner() -> ScriptedRunner:
    return ScriptedRunner()


@pytest_asyncio.fixture
async def app(tmp_path: Path, scripted_runner: ScriptedRunner):
    """创建测试用 FastAPI app 实例（ASGITransport 不触发 lifespan，手动装配 state）"""
    os.environ["AGENTHQ_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from agenthq.gateway.main import create_app

    application = create_app()
    store_group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    activity_hub = ActivityHub()
    application.state.store_group = store_group
    application.state.activity_hub = activity_hub
    application.state.dispatch_service = DispatchService(
        store_group, scripted_runner, activity_hub=activity_hub
    )

    yield application

    scripted_runner.release.set()
    await application.state.dispatch_service.shutdown()
    await store_group.conn.close()
    for key in ["AGENTHQ_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
