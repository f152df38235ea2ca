"""NotificationStore SQLite 实现

notifications 表对核心而言 append-only，只有 read 标记由接收者修改。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import NotificationType
from ..models.notification import Notification


class SqliteNotificationStore:
    """NotificationStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_notification(self, notification: Notification) -> None:
        """写入一条通知（不自动提交）"""
        await self._conn.execute(
            """
            INSERT INTO notifications (notification_id, user_id, type, title,
                                       message, data, read, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                notification.notification_id,
                notification.user_id,
                notification.type.value,
                notification.title,
                notification.message,
                json.dumps(notification.data, ensure_ascii=False),
                int(notification.read),
                notification.created_at.isoformat(),
            ),
        )

    async def get_notification(self, notification_id: str) -> Notification | None:
        cursor = await self._conn.execute(
            "SELECT * FROM notifications WHERE notification_id = ?",
            (notification_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_notification(row) if row else None

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 100,
    ) -> list[Notification]:
        """查询用户的通知，按 created_at 倒序"""
        sql = "SELECT * FROM notifications WHERE user_id = ?"
        if unread_only:
            sql += " AND read = 0"
        sql += " ORDER BY created_at DESC, notification_id DESC LIMIT ?"
        cursor = await self._conn.execute(sql, (user_id, limit))
        rows = await cursor.fetchall()
        return [self._row_to_notification(row) for row in rows]

    async def count_unread(self, user_id: str) -> int:
        """用户未读通知总数（不受列表上限影响）"""
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0",
            (user_id,),
        )
        row = await cursor.fetchone()
        return row[0]

    async def mark_read(self, notification_id: str, user_id: str) -> int:
        """标记已读，仅接收者本人可操作，返回受影响行数"""
        cursor = await self._conn.execute(
            "UPDATE notifications SET read = 1 WHERE notification_id = ? AND user_id = ?",
            (notification_id, user_id),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_notification(row: aiosqlite.Row) -> Notification:
        return Notification(
            notification_id=row["notification_id"],
            user_id=row["user_id"],
            type=NotificationType(row["type"]),
            title=row["title"],
            message=row["message"],
            data=json.loads(row["data"]) if row["data"] else {},
            read=bool(row["read"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
