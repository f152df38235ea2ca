"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store、PushHub 与当前用户

Store 与 PushHub 实例通过 app.state 管理，在 lifespan 中初始化/清理。
当前用户由 Authorization: Bearer <会话令牌> 解析。
"""

import structlog
from fastapi import Depends, Request
from taskmarket.core.exceptions import UnauthorizedError
from taskmarket.core.store import StoreGroup

from .services.push_hub import PushHub


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_push_hub(request: Request) -> PushHub:
    """从 app.state 获取 PushHub 实例"""
    return request.app.state.push_hub


def bearer_token(request: Request) -> str | None:
    """从 Authorization 头提取 Bearer 令牌"""
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_session_user(store_group: StoreGroup, token: str | None) -> str | None:
    """会话令牌 -> user_id；缺失或无效返回 None"""
    if not token:
        return None
    return await store_group.directory_store.get_session_user_id(token)


async def get_current_user_id(
    request: Request,
    store_group: StoreGroup = Depends(get_store_group),
) -> str:
    """解析已认证的操作者，失败抛 UnauthorizedError（401）"""
    token = bearer_token(request)
    if token is None:
        raise UnauthorizedError()
    user_id = await resolve_session_user(store_group, token)
    if user_id is None:
        raise UnauthorizedError("Invalid session token")
    structlog.contextvars.bind_contextvars(user_id=user_id)
    return user_id
