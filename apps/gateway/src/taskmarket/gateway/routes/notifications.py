"""通知路由

GET /api/notifications: 当前用户的通知（新到旧），unread=true 仅返回未读。
POST /api/notifications/{notification_id}/read: 标记已读。

推送通道断线重连后，客户端通过此接口补齐错过的通知。
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from taskmarket.core.models import Notification

from ..deps import get_current_user_id, get_store_group
from ..services.notification_service import NotificationService

router = APIRouter()


class NotificationListResponse(BaseModel):
    notifications: list[Notification]
    unread_count: int


@router.get("/api/notifications", response_model=NotificationListResponse)
async def list_notifications(
    unread: bool = Query(default=False, description="仅返回未读"),
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = NotificationService(store_group)
    notifications = await service.list_for_user(user_id, unread_only=unread)
    return NotificationListResponse(
        notifications=notifications,
        unread_count=await service.count_unread(user_id),
    )


@router.post("/api/notifications/{notification_id}/read", response_model=Notification)
async def mark_notification_read(
    notification_id: str,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = NotificationService(store_group)
    return await service.mark_read(notification_id, user_id)
