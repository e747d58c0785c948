"""FastAPI lifespan 测试

测试内容：
1. 启动时按环境变量初始化 Store / ActivityHub / DispatchService
2. Echo 模式下派发走完整流程
3. 关闭时取消进行中的派发并关闭连接
"""

from pathlib import Path

import pytest
from agenthq.dispatch import EchoAgentRunner
from agenthq.gateway.main import create_app
from httpx import ASGITransport, AsyncClient


@pytest.fixture
def echo_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("AGENTHQ_DB_PATH", str(tmp_path / "lifespan" / "agenthq.db"))
    monkeypatch.setenv("AGENTHQ_RUNNER_MODE", "echo")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")
    return tmp_path


class TestLifespan:
    async def test_startup_wires_components(self, echo_env):
        app = create_app()

        async with app.router.lifespan_context(app):
            assert app.state.store_group is not None
            assert app.state.activity_hub is not None
            assert isinstance(app.state.dispatch_service.runner, EchoAgentRunner)
            assert app.state.dispatch_config.runner_mode == "echo"

        assert (echo_env / "lifespan" / "agenthq.db").exists()

    async def test_echo_dispatch_round_trip(self, echo_env):
        app = create_app()

        async with app.router.lifespan_context(app):
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                task = (
                    await client.post("/api/tasks", json={"title": "Echo me", "agent": "gumbo"})
                ).json()["task"]
                await client.post(f"/api/tasks/{task['id']}/dispatch")
                await app.state.dispatch_service.wait_idle()

                detail = (await client.get(f"/api/tasks/{task['id']}")).json()

        assert detail["task"]["status"] == "done"
        assert detail["task"]["agent_output"].startswith(f"Echo: TASK #{task['id']}: Echo me")
