"""RequestContextMiddleware -- 请求上下文与访问日志

每个请求绑定 request_id / method / path 到 structlog contextvars，
任务路由（/api/tasks/{id}[/...]、/api/stream/task/{id}）额外绑定 task_id。
后台派发由 asyncio.create_task 启动，会复制当前 contextvars，
因此 Agent 运行期间的日志也带着发起派发的 request_id。

调用方传入合法的 X-Request-ID 时沿用，否则生成 ULID；响应头回显该值。
"""

import re
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

log = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

_TASK_PATH = re.compile(r"^/api/(?:tasks|stream/task)/(\d+)(?:/|$)")
_CALLER_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# 探活请求频繁，只记 debug
_HEALTH_PATHS = frozenset({"/health", "/ready"})


def extract_task_id(path: str) -> int | None:
    """从请求路径中提取整数任务 id，不匹配时返回 None"""
    match = _TASK_PATH.match(path)
    if match is None:
        return None
    return int(match.group(1))


def resolve_request_id(header_value: str | None) -> str:
    """沿用调用方的 request_id（仅限安全字符），否则生成新的 ULID"""
    if header_value and _CALLER_REQUEST_ID.match(header_value):
        return header_value
    return str(ULID())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """请求级上下文中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=path,
        )
        task_id = extract_task_id(path)
        if task_id is not None:
            structlog.contextvars.bind_contextvars(task_id=task_id)

        started = time.monotonic()
        response = await call_next(request)
        duration_ms = int((time.monotonic() - started) * 1000)

        if path in _HEALTH_PATHS:
            emit = log.adebug
        elif response.status_code >= 500:
            emit = log.awarning
        else:
            emit = log.ainfo
        await emit(
            "request_completed",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
