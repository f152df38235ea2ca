"""TraceMiddleware -- 为任务操作绑定 task_id

从 /api/tasks/{task_id}[/accept] 路径中提取 task_id，
贯穿该请求内的服务层日志。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

_ULID_LENGTH = 26


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = request.url.path.strip("/").split("/")
        # ["api", "tasks", "<task_id>", ...]；排除 /api/tasks/client 等子路由
        if len(parts) >= 3 and parts[:2] == ["api", "tasks"] and len(parts[2]) == _ULID_LENGTH:
            structlog.contextvars.bind_contextvars(task_id=parts[2])

        return await call_next(request)
