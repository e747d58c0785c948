"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式、磁盘空间。
         profile=agent 时额外探测 Agent 可执行文件（`<binary> health`）。
"""

import shutil

import structlog
from agenthq.core.store.sqlite_init import verify_wal_mode
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置文件：core（默认）仅核心检查；agent/full 包含 Agent 可执行文件探测",
    ),
):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: 数据库是否处于 WAL 模式
    3. disk_space_mb: 磁盘剩余空间
    4. agent: 根据 profile 决定是否探测 Agent 运行环境
    """
    effective_profile = profile or "core"

    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    store_group = request.app.state.store_group
    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. WAL 模式
    if checks["sqlite"] == "ok":
        checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "disabled"

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except OSError:
        checks["disk_space_mb"] = 0
        all_ok = False

    # 4. Agent 运行环境探测
    if effective_profile in ("agent", "full"):
        dispatch_service = getattr(request.app.state, "dispatch_service", None)
        if dispatch_service is None:
            checks["agent"] = "skipped"
        else:
            try:
                healthy = await dispatch_service.runner.health_check()
            except Exception as e:
                log.warning("health_check_error", error=str(e))
                healthy = False
            checks["agent"] = "ok" if healthy else "unreachable"
            if not healthy:
                all_ok = False
    else:
        checks["agent"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )
