"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭、PushHub 与心跳任务、路由注册。
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from taskmarket.core.config import get_db_path
from taskmarket.core.store import create_store_group

from .config import load_push_config
from .middleware.error_handler import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import accept, health, notifications, push, service_requests, tasks
from .services.notification_service import NotificationService
from .services.push_hub import PushHub

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 与推送通道，关闭时清理"""
    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    push_config = load_push_config()
    app.state.push_config = push_config
    push_hub = PushHub(send_timeout_s=push_config.send_timeout_s)
    app.state.push_hub = push_hub

    heartbeat = asyncio.create_task(push_hub.run_heartbeat(push_config.heartbeat_interval_s))
    log.info(
        "push_hub_started",
        heartbeat_interval_s=push_config.heartbeat_interval_s,
        queue_maxsize=push_config.queue_maxsize,
        send_timeout_s=push_config.send_timeout_s,
    )

    yield

    heartbeat.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await heartbeat
    await NotificationService.drain_background_pushes()
    await push_hub.close_all()

    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="TaskMarket Gateway",
        version="0.1.0",
        description="本地服务市场：任务发布、排他接单与通知推送",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    setup_logging()
    setup_logfire(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(accept.router, tags=["tasks"])
    app.include_router(notifications.router, tags=["notifications"])
    app.include_router(service_requests.router, tags=["service-requests"])
    app.include_router(push.router, tags=["push"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
