"""structlog 配置模块

TASKMARKET_LOG_FORMAT=dev（默认）输出控制台可读格式，json 输出结构化 JSON。
标准库 logger（uvicorn 等）经 ProcessorFormatter 走同一条渲染链。
aiosqlite 的逐条语句调试日志与 uvicorn 访问日志被压到 WARNING：
请求日志已由 LoggingMiddleware 以 request_completed 输出。

Logfire APM 由 LOGFIRE_SEND_TO_LOGFIRE 控制，启用时 structlog 事件同时转发到 Logfire。
"""

import logging
import os

import structlog
from fastapi import FastAPI

# 默认过于嘈杂的第三方 logger
_QUIET_LOGGERS: dict[str, int] = {
    "aiosqlite": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _select_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> None:
    """初始化 structlog 与根 logger

    TASKMARKET_LOG_LEVEL 控制根 logger 级别（默认 INFO，无法识别时回退 INFO）。
    """
    shared = _shared_processors()
    renderer = _select_renderer(os.environ.get("TASKMARKET_LOG_FORMAT", "dev"))

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_resolve_level(os.environ.get("TASKMARKET_LOG_LEVEL", "INFO")))

    for name, level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def setup_logfire(app: FastAPI) -> bool:
    """按 LOGFIRE_SEND_TO_LOGFIRE=true 启用 Logfire（需要 logfire extra 与 LOGFIRE_TOKEN）

    Returns:
        True 如果 Logfire 已启用；初始化失败时记录告警并降级为纯本地日志
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return False
    try:
        import logfire

        logfire.configure(service_name="taskmarket-gateway")
        logfire.instrument_fastapi(app)

        # structlog 事件同时转发到 Logfire（插在 stdlib 桥接之前）
        processors = list(structlog.get_config()["processors"])
        processors.insert(len(processors) - 1, logfire.StructlogProcessor())
        structlog.configure(processors=processors)
    except Exception as e:
        structlog.get_logger().warning(
            "logfire_init_failed",
            error_type=type(e).__name__,
            message="Logfire 初始化失败，降级为纯本地日志",
        )
        return False
    return True
