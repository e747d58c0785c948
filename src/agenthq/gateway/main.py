"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + Agent 调用组件初始化 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from agenthq.core.config import get_db_path
from agenthq.core.store import create_store_group
from agenthq.dispatch import build_runner, load_dispatch_config
from fastapi import FastAPI

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.request_mw import RequestContextMiddleware
from .routes import activity, agents, dispatch, health, stream, tasks
from .services.activity_hub import ActivityHub
from .services.dispatch_service import DispatchService

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和派发组件，关闭时取消后台派发并清理连接"""
    # 启动：初始化 Store
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    # 初始化 ActivityHub
    activity_hub = ActivityHub()
    app.state.activity_hub = activity_hub

    # Agent 调用（根据配置选择模式）
    dispatch_config = load_dispatch_config()
    app.state.dispatch_config = dispatch_config
    runner = build_runner(dispatch_config)
    app.state.dispatch_service = DispatchService(
        store_group,
        runner,
        activity_hub=activity_hub,
    )
    log.info(
        "dispatch_service_initialized",
        mode=dispatch_config.runner_mode,
        agent_binary=dispatch_config.agent_binary,
        timeout_s=dispatch_config.timeout_s,
    )

    yield

    # 关闭：先取消进行中的派发（kill Agent 进程），再关闭数据库连接
    await app.state.dispatch_service.shutdown()
    if hasattr(app.state, "store_group") and app.state.store_group:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="AgentHQ Gateway",
        version="0.1.0",
        description="AgentHQ 任务派发与生命周期 API",
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(dispatch.router, tags=["dispatch"])
    app.include_router(activity.router, tags=["activity"])
    app.include_router(agents.router, tags=["agents"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
