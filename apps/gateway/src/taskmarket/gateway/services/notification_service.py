"""NotificationService -- 通知扇出

notify() 先为每个去重后的接收者持久化一条 Notification（同一写事务），
再把实时推送交给后台任务；推送失败只记录日志，不影响调用方。
"""

import asyncio
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

import structlog
from taskmarket.core.config import NOTIFICATION_LIST_LIMIT
from taskmarket.core.exceptions import NotFoundError
from taskmarket.core.models import Notification, NotificationType, PushPayload
from taskmarket.core.store import StoreGroup, persist_notifications
from ulid import ULID

from .push_hub import PushHub

log = structlog.get_logger()


class NotificationService:
    """通知业务服务"""

    # 持有后台推送任务的强引用，避免被 GC 回收
    _background_pushes: set[asyncio.Task] = set()

    def __init__(self, store_group: StoreGroup, push_hub: PushHub | None = None) -> None:
        self._stores = store_group
        self._push_hub = push_hub

    async def notify(
        self,
        recipient_ids: Iterable[str],
        type: NotificationType,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> list[Notification]:
        """向一组接收者扇出通知

        Args:
            recipient_ids: 接收者 user_id（重复项只保留一个）
            type: 通知类型
            title: 标题
            message: 正文
            data: 结构化 payload（如 {"taskId": ...}）

        Returns:
            已持久化的 Notification 列表（空接收者集合返回空列表）
        """
        recipients = sorted(set(recipient_ids))
        if not recipients:
            return []

        payload_data = dict(data or {})
        now = datetime.now(UTC)
        notifications = [
            Notification(
                notification_id=str(ULID()),
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                data=payload_data,
                created_at=now,
            )
            for user_id in recipients
        ]

        await persist_notifications(
            self._stores.conn,
            self._stores.write_lock,
            self._stores.notification_store,
            notifications,
        )
        log.info(
            "notifications_persisted",
            notification_type=type.value,
            recipient_count=len(notifications),
        )

        if self._push_hub is not None:
            payload = PushPayload(type=type, title=title, message=message, data=payload_data)
            self._schedule_push(recipients, payload)

        return notifications

    def _schedule_push(self, recipients: list[str], payload: PushPayload) -> None:
        push = asyncio.create_task(self._push(recipients, payload))
        self._background_pushes.add(push)
        push.add_done_callback(self._background_pushes.discard)

    async def _push(self, recipients: list[str], payload: PushPayload) -> None:
        try:
            delivered = await self._push_hub.send_to_users(recipients, payload)
            log.debug(
                "push_delivered",
                notification_type=payload.type.value,
                connection_count=delivered,
            )
        except Exception as e:
            log.warning(
                "push_delivery_failed",
                notification_type=payload.type.value,
                error_type=type(e).__name__,
                error=str(e),
            )

    @classmethod
    async def drain_background_pushes(cls) -> None:
        """等待当前事件循环上所有在途推送完成（应用关闭与测试使用）"""
        loop = asyncio.get_running_loop()
        while pending := [t for t in cls._background_pushes if t.get_loop() is loop]:
            await asyncio.gather(*pending, return_exceptions=True)

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = NOTIFICATION_LIST_LIMIT,
    ) -> list[Notification]:
        """查询用户通知（新到旧）"""
        return await self._stores.notification_store.list_for_user(
            user_id, unread_only=unread_only, limit=limit
        )

    async def count_unread(self, user_id: str) -> int:
        return await self._stores.notification_store.count_unread(user_id)

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        """将通知标记为已读；非本人的通知按不存在处理"""
        async with self._stores.transaction():
            rows = await self._stores.notification_store.mark_read(notification_id, user_id)
        if rows == 0:
            raise NotFoundError(
                f"Notification with id {notification_id} does not exist",
                code="NOTIFICATION_NOT_FOUND",
            )
        return await self._stores.notification_store.get_notification(notification_id)
