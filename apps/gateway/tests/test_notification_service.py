"""NotificationService 单元测试

测试内容：
1. 每个去重后的接收者一条记录
2. 空接收者集合不写入
3. 推送在后台执行，失败不影响持久化
4. 列表与已读标记
"""

import json

import pytest
from taskmarket.core.exceptions import NotFoundError
from taskmarket.core.models import NotificationType
from taskmarket.gateway.services.notification_service import NotificationService


async def _notify(service, recipients):
    return await service.notify(
        recipients,
        NotificationType.NEW_TASK,
        "New Task Available",
        "New task: Mow",
        {"taskId": "t1"},
    )


class TestNotify:
    async def test_one_row_per_unique_recipient(self, store_group, marketplace):
        service = NotificationService(store_group)
        created = await _notify(service, ["user-p1", "user-p2", "user-p1"])

        assert sorted(n.user_id for n in created) == ["user-p1", "user-p2"]
        assert len({n.notification_id for n in created}) == 2
        for user_id in ("user-p1", "user-p2"):
            rows = await store_group.notification_store.list_for_user(user_id)
            assert len(rows) == 1
            assert rows[0].data == {"taskId": "t1"}
            assert rows[0].read is False

    async def test_empty_recipients(self, store_group, marketplace, push_hub):
        service = NotificationService(store_group, push_hub)
        assert await _notify(service, []) == []
        cursor = await store_group.conn.execute("SELECT COUNT(*) FROM notifications")
        assert (await cursor.fetchone())[0] == 0

    async def test_persists_without_live_connections(self, store_group, marketplace, push_hub):
        service = NotificationService(store_group, push_hub)
        await _notify(service, ["user-p1"])
        await NotificationService.drain_background_pushes()
        assert len(await store_group.notification_store.list_for_user("user-p1")) == 1

    async def test_push_delivered_in_background(
        self, store_group, marketplace, push_hub, fake_connection
    ):
        conn = fake_connection("user-p1")
        await push_hub.register(conn)
        service = NotificationService(store_group, push_hub)

        await _notify(service, ["user-p1", "user-p2"])
        await NotificationService.drain_background_pushes()

        assert [json.loads(text) for text in conn.sent] == [
            {
                "type": "new_task",
                "title": "New Task Available",
                "message": "New task: Mow",
                "data": {"taskId": "t1"},
            }
        ]

    async def test_push_failure_is_swallowed(
        self, store_group, marketplace, push_hub, monkeypatch
    ):
        async def explode(*args, **kwargs):
            raise RuntimeError("push channel down")

        monkeypatch.setattr(push_hub, "send_to_users", explode)
        service = NotificationService(store_group, push_hub)

        created = await _notify(service, ["user-p1"])
        await NotificationService.drain_background_pushes()

        assert len(created) == 1
        assert len(await store_group.notification_store.list_for_user("user-p1")) == 1


class TestListAndMarkRead:
    async def test_list_unread_and_mark_read(self, store_group, marketplace):
        service = NotificationService(store_group)
        [first] = await _notify(service, ["user-c"])
        await _notify(service, ["user-c"])

        marked = await service.mark_read(first.notification_id, "user-c")
        assert marked.read is True

        unread = await service.list_for_user("user-c", unread_only=True)
        assert len(unread) == 1
        assert unread[0].notification_id != first.notification_id
        assert len(await service.list_for_user("user-c")) == 2

    async def test_cannot_mark_someone_elses_notification(self, store_group, marketplace):
        service = NotificationService(store_group)
        [notification] = await _notify(service, ["user-p1"])

        with pytest.raises(NotFoundError) as exc_info:
            await service.mark_read(notification.notification_id, "user-p2")
        assert exc_info.value.code == "NOTIFICATION_NOT_FOUND"
