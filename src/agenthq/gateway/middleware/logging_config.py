"""structlog 配置模块

dev 模式：ConsoleRenderer 可读输出
json 模式：结构化 JSON 输出，异常栈渲染为字符串字段
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 环境变量控制，false 时降级为纯本地日志。

访问日志由 RequestContextMiddleware 输出（带 request_id / task_id），
因此 uvicorn.access 默认静音；aiosqlite 的 debug 日志逐条打印 SQL，同样压到 WARNING。
"""

import logging
import os

import structlog
from fastapi import FastAPI

LOG_FORMATS = frozenset({"dev", "json"})

# 这些第三方 logger 在 INFO/DEBUG 级别过于嘈杂
_NOISY_LOGGERS: dict[str, int] = {
    "aiosqlite": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def _shared_processors(json_mode: bool) -> list[structlog.types.Processor]:
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_mode:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog + 标准库 logging

    Args:
        log_format: "dev" | "json"，缺省读 AGENTHQ_LOG_FORMAT（默认 dev）
        log_level: 日志级别名，缺省读 AGENTHQ_LOG_LEVEL（默认 INFO）
    """
    log_format = (log_format or os.environ.get("AGENTHQ_LOG_FORMAT", "dev")).lower()
    log_level = log_level or os.environ.get("AGENTHQ_LOG_LEVEL", "INFO")

    unknown_format = log_format not in LOG_FORMATS
    if unknown_format:
        requested_format, log_format = log_format, "dev"

    json_mode = log_format == "json"
    shared_processors = _shared_processors(json_mode)
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_mode
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name, level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    if unknown_format:
        structlog.get_logger().warning(
            "unknown_log_format",
            requested=requested_format,
            fallback="dev",
        )


def setup_logfire(app: FastAPI) -> bool:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE 环境变量控制：
    - "true": 启用 Logfire APM（需要 LOGFIRE_TOKEN，安装 observability extra）
    - "false" (默认): 降级为纯本地日志

    Returns:
        Logfire 是否已启用
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire != "true":
        return False

    try:
        import logfire

        logfire.configure(service_name="agenthq-gateway")
        logfire.instrument_fastapi(app)
    except Exception as e:
        # Logfire 初始化失败不影响系统运行
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            message="Logfire 初始化失败，降级为纯本地日志",
        )
        return False
    return True
