"""写事务封装

同一个 aiosqlite 连接被多个协程共享，多语句写入必须在
write_transaction 内执行，避免协程交错提交彼此的半成品事务。
BEGIN IMMEDIATE 在事务开始时即取得写锁，其他连接写同一数据库文件时
由 busy_timeout 排队等待。

接单的排他性不依赖这里的锁：它由条件 UPDATE 的 WHERE 子句保证，
跨连接、跨进程同样成立。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from ..models.enums import TaskStatus
from ..models.notification import Notification
from .protocols import DirectoryStore, NotificationStore, TaskStore


@asynccontextmanager
async def write_transaction(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
) -> AsyncIterator[aiosqlite.Connection]:
    """写事务上下文：正常退出时提交，异常时回滚并重新抛出

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        lock: 该连接上的写锁
    """
    async with lock:
        if not conn.in_transaction:
            await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            await conn.rollback()
            raise
        else:
            await conn.commit()


async def complete_task_and_credit_provider(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
    task_store: TaskStore,
    directory_store: DirectoryStore,
    task_id: str,
    provider_id: str,
    completed_at: datetime,
) -> bool:
    """在同一事务内完成任务并累加服务商 completed_jobs

    Returns:
        True 如果状态流转成功；False 表示任务已不在可完成状态（不做任何写入）
    """
    async with write_transaction(conn, lock):
        rows = await task_store.transition_task_conditional(
            task_id,
            from_statuses={TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS},
            to_status=TaskStatus.COMPLETED,
            updated_at=completed_at,
            completed_at=completed_at,
        )
        if rows == 0:
            return False
        await directory_store.increment_completed_jobs(provider_id)
    return True


async def persist_notifications(
    conn: aiosqlite.Connection,
    lock: asyncio.Lock,
    notification_store: NotificationStore,
    notifications: list[Notification],
) -> None:
    """批量写入通知（每个接收者一行），单次提交"""
    if not notifications:
        return
    async with write_transaction(conn, lock):
        for notification in notifications:
            await notification_store.create_notification(notification)
