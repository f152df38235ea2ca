"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式与推送连接数。
"""

import structlog
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse
from taskmarket.core.store.sqlite_init import verify_wal_mode

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(request: Request):
    """Readiness 检查

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: WAL 是否生效
    3. push_connections: 当前推送连接数（仅信息，不影响就绪）
    """
    checks: dict = {}
    all_ok = True

    store_group = getattr(request.app.state, "store_group", None)
    try:
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("ready_check_error", check="sqlite", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    if all_ok:
        try:
            checks["wal_mode"] = "ok" if await verify_wal_mode(store_group.conn) else "disabled"
        except Exception as e:
            checks["wal_mode"] = f"error: {str(e)}"
            all_ok = False

    push_hub = getattr(request.app.state, "push_hub", None)
    checks["push_connections"] = push_hub.connection_count() if push_hub else 0

    status_code = 200 if all_ok else 503
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if all_ok else "not_ready",
            "checks": checks,
        },
    )
