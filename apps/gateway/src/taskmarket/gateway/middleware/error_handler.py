"""业务异常 -> HTTP 响应映射

统一错误信封：{"error": {"code": ..., "message": ...}}
"""

import structlog
from fastapi import FastAPI, Request
from starlette.responses import JSONResponse
from taskmarket.core.exceptions import AlreadyAcceptedError, TaskMarketError

log = structlog.get_logger()


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def handle_taskmarket_error(request: Request, exc: TaskMarketError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", code=exc.code, error=exc.message)
    elif not isinstance(exc, AlreadyAcceptedError):
        # 接单竞争失败已在服务层以 info 记录
        log.info("request_rejected", code=exc.code, status_code=exc.status_code)
    return error_response(exc.status_code, exc.code, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskMarketError, handle_taskmarket_error)
