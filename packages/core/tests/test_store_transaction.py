"""写事务单元测试

测试内容：
1. 正常退出提交
2. 异常回滚
3. 完成任务与 completed_jobs 累加的原子性
4. 通知批量写入
"""

from datetime import UTC, datetime

import pytest
from taskmarket.core.models import Notification, NotificationType, TaskStatus
from taskmarket.core.store import (
    complete_task_and_credit_provider,
    persist_notifications,
)


class TestWriteTransaction:
    async def test_commit_on_success(self, store_group, marketplace, make_task):
        async with store_group.transaction():
            await store_group.task_store.create_task(make_task())
        assert not store_group.conn.in_transaction
        assert await store_group.task_store.get_task(make_task().task_id) is not None

    async def test_rollback_on_error(self, store_group, marketplace, make_task):
        task = make_task()
        with pytest.raises(RuntimeError):
            async with store_group.transaction():
                await store_group.task_store.create_task(task)
                raise RuntimeError("boom")

        assert not store_group.conn.in_transaction
        assert await store_group.task_store.get_task(task.task_id) is None


class TestCompleteAndCredit:
    async def _accepted_task(self, store_group, make_task):
        task = make_task()
        async with store_group.transaction():
            await store_group.task_store.create_task(task)
            await store_group.task_store.accept_task_conditional(
                task.task_id, "prov-p1", datetime.now(UTC)
            )
        return task.task_id

    async def test_complete_increments_jobs(self, store_group, marketplace, make_task):
        task_id = await self._accepted_task(store_group, make_task)

        ok = await complete_task_and_credit_provider(
            store_group.conn,
            store_group.write_lock,
            store_group.task_store,
            store_group.directory_store,
            task_id,
            "prov-p1",
            datetime.now(UTC),
        )
        assert ok is True

        task = await store_group.task_store.get_task(task_id)
        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at is not None
        provider = await store_group.directory_store.get_service_provider("prov-p1")
        assert provider.completed_jobs == 1

    async def test_second_completion_is_noop(self, store_group, marketplace, make_task):
        task_id = await self._accepted_task(store_group, make_task)
        args = (
            store_group.conn,
            store_group.write_lock,
            store_group.task_store,
            store_group.directory_store,
            task_id,
            "prov-p1",
        )
        assert await complete_task_and_credit_provider(*args, datetime.now(UTC)) is True
        assert await complete_task_and_credit_provider(*args, datetime.now(UTC)) is False

        provider = await store_group.directory_store.get_service_provider("prov-p1")
        assert provider.completed_jobs == 1

    async def test_open_task_cannot_complete(self, store_group, marketplace, make_task):
        task = make_task()
        async with store_group.transaction():
            await store_group.task_store.create_task(task)

        ok = await complete_task_and_credit_provider(
            store_group.conn,
            store_group.write_lock,
            store_group.task_store,
            store_group.directory_store,
            task.task_id,
            "prov-p1",
            datetime.now(UTC),
        )
        assert ok is False
        assert (await store_group.task_store.get_task(task.task_id)).status == TaskStatus.OPEN


class TestPersistNotifications:
    async def test_one_row_per_notification(self, store_group, marketplace):
        now = datetime.now(UTC)
        batch = [
            Notification(
                notification_id=f"n-{user_id}",
                user_id=user_id,
                type=NotificationType.NEW_TASK,
                title="New Task Available",
                message="New task: Mow",
                created_at=now,
            )
            for user_id in ("user-p1", "user-p2")
        ]
        await persist_notifications(
            store_group.conn, store_group.write_lock, store_group.notification_store, batch
        )
        for user_id in ("user-p1", "user-p2"):
            assert len(await store_group.notification_store.list_for_user(user_id)) == 1

    async def test_batch_rolls_back_together(self, store_group, marketplace):
        """未知接收者触发外键错误时，整批都不写入"""
        now = datetime.now(UTC)
        batch = [
            Notification(
                notification_id=f"n-{user_id}",
                user_id=user_id,
                type=NotificationType.NEW_TASK,
                title="t",
                message="m",
                created_at=now,
            )
            for user_id in ("user-p1", "ghost-user")
        ]
        with pytest.raises(Exception):
            await persist_notifications(
                store_group.conn, store_group.write_lock, store_group.notification_store, batch
            )
        assert await store_group.notification_store.list_for_user("user-p1") == []

    async def test_empty_batch(self, store_group):
        await persist_notifications(
            store_group.conn, store_group.write_lock, store_group.notification_store, []
        )
        assert not store_group.conn.in_transaction
