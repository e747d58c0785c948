"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store / Hub / DispatchService

实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from agenthq.core.store import StoreGroup
from fastapi import Request

from .services.activity_hub import ActivityHub
from .services.dispatch_service import DispatchService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_activity_hub(request: Request) -> ActivityHub:
    """从 app.state 获取 ActivityHub 实例"""
    return request.app.state.activity_hub


def get_dispatch_service(request: Request) -> DispatchService:
    """从 app.state 获取 DispatchService 实例"""
    return request.app.state.dispatch_service
