"""实时推送路由 -- WebSocket 与 SSE 两种传输

GET /api/ws?token=...: WebSocket 推送。令牌缺失或无效时在 accept 之前以 1008 关闭。
GET /api/stream/notifications?token=...: SSE 推送（也接受 Authorization: Bearer）。

两种传输都登记到同一个 PushHub；服务端每个心跳周期发送 {"type":"ping"}，
WebSocket 客户端的任何入站帧都视为存活，入站 {"type":"ping"} 回复 {"type":"pong"}。
"""

import json

import structlog
from fastapi import APIRouter, Depends, Query, Request, WebSocket, status
from sse_starlette.sse import EventSourceResponse
from taskmarket.core.exceptions import UnauthorizedError

from ..deps import bearer_token, get_push_hub, get_store_group, resolve_session_user
from ..services.push_hub import PONG_FRAME, SSEConnection, WebSocketConnection

log = structlog.get_logger()

router = APIRouter()


def _is_ping(text: str | None) -> bool:
    if not text:
        return False
    try:
        frame = json.loads(text)
    except ValueError:
        return False
    return isinstance(frame, dict) and frame.get("type") == "ping"


@router.websocket("/api/ws")
async def push_websocket(websocket: WebSocket, token: str | None = None):
    store_group = websocket.app.state.store_group
    push_hub = websocket.app.state.push_hub

    user_id = await resolve_session_user(store_group, token)
    if user_id is None:
        log.info("push_connection_rejected", transport="websocket")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    conn = WebSocketConnection(websocket, user_id)
    await push_hub.register(conn)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            conn.mark_alive()
            if _is_ping(message.get("text")):
                await websocket.send_text(PONG_FRAME)
    finally:
        await push_hub.unregister(conn)


@router.get("/api/stream/notifications")
async def stream_notifications(
    request: Request,
    token: str | None = Query(default=None, description="会话令牌"),
    store_group=Depends(get_store_group),
    push_hub=Depends(get_push_hub),
):
    """SSE 推送端点 -- 事件类型 notification / ping"""
    user_id = await resolve_session_user(store_group, token or bearer_token(request))
    if user_id is None:
        raise UnauthorizedError("Invalid session token")

    conn = SSEConnection(user_id, queue_maxsize=request.app.state.push_config.queue_maxsize)
    await push_hub.register(conn)

    async def event_generator():
        try:
            async for event in conn.events():
                yield event
        finally:
            await push_hub.unregister(conn)

    return EventSourceResponse(event_generator())
