"""TaskMarket Core Store -- SQLite 持久化实现

提供工厂函数创建共享数据库连接的 Store 实例组。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .directory_store import SqliteDirectoryStore
from .notification_store import SqliteNotificationStore
from .service_request_store import SqliteServiceRequestStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import (
    complete_task_and_credit_provider,
    persist_notifications,
    write_transaction,
)


class StoreGroup:
    """Store 实例组 -- 共享同一个数据库连接与写锁"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self.conn = conn
        self.write_lock = asyncio.Lock()
        self.task_store = SqliteTaskStore(conn)
        self.directory_store = SqliteDirectoryStore(conn)
        self.notification_store = SqliteNotificationStore(conn)
        self.service_request_store = SqliteServiceRequestStore(conn)

    def transaction(self):
        """在共享连接上开启写事务"""
        return write_transaction(self.conn, self.write_lock)


async def create_store_group(db_path: str) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径

    Returns:
        StoreGroup 实例
    """
    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn)

    return StoreGroup(conn=conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteDirectoryStore",
    "SqliteNotificationStore",
    "SqliteServiceRequestStore",
    "init_db",
    "write_transaction",
    "complete_task_and_credit_provider",
    "persist_notifications",
]
