"""PushHub 单元测试

测试内容：
1. 登记 / 注销，最后一个连接注销后移除用户条目
2. 按用户推送：跳过不可写连接，写入失败的连接被移除
3. 多用户推送：离线用户不是错误，消息只序列化一次
4. 心跳：未回应的连接在下一轮被驱逐；写入阻塞的连接按超时移除
5. SSE 连接：有界队列与事件生成器
"""

import asyncio
import json

from taskmarket.core.models import NotificationType, PushPayload
from taskmarket.gateway.services.push_hub import PushHub, SSEConnection


def _payload(**data) -> PushPayload:
    return PushPayload(
        type=NotificationType.NEW_TASK,
        title="New Task Available",
        message="New task: Mow",
        data=data or {"taskId": "t1"},
    )


class TestRegistry:
    async def test_register_and_unregister(self, push_hub: PushHub, fake_connection):
        a = fake_connection("user-p1")
        b = fake_connection("user-p1")
        await push_hub.register(a)
        await push_hub.register(b)
        assert push_hub.connection_count() == 2
        assert push_hub.connections_for("user-p1") == {a, b}

        assert await push_hub.unregister(a) is True
        assert push_hub.is_online("user-p1")
        assert await push_hub.unregister(b) is True
        assert not push_hub.is_online("user-p1")
        assert push_hub.connection_count() == 0

    async def test_unregister_unknown_is_noop(self, push_hub: PushHub, fake_connection):
        assert await push_hub.unregister(fake_connection("user-x")) is False


class TestSend:
    async def test_send_to_all_connections_of_user(self, push_hub, fake_connection):
        tab1, tab2 = fake_connection("user-p1"), fake_connection("user-p1")
        other = fake_connection("user-p2")
        for conn in (tab1, tab2, other):
            await push_hub.register(conn)

        sent = await push_hub.send_to_user("user-p1", _payload())
        assert sent == 2
        assert json.loads(tab1.sent[0]) == {
            "type": "new_task",
            "title": "New Task Available",
            "message": "New task: Mow",
            "data": {"taskId": "t1"},
        }
        assert tab2.sent == tab1.sent
        assert other.sent == []

    async def test_offline_user_returns_zero(self, push_hub):
        assert await push_hub.send_to_user("nobody", _payload()) == 0

    async def test_non_writable_connection_skipped(self, push_hub, fake_connection):
        stalled = fake_connection("user-p1", writable=False)
        live = fake_connection("user-p1")
        await push_hub.register(stalled)
        await push_hub.register(live)

        assert await push_hub.send_to_user("user-p1", _payload()) == 1
        assert stalled.sent == []
        # 不可写只是跳过，不移除
        assert stalled in push_hub.connections_for("user-p1")

    async def test_failed_write_drops_connection(self, push_hub, fake_connection):
        broken = fake_connection("user-p1", fail=True)
        live = fake_connection("user-p1")
        await push_hub.register(broken)
        await push_hub.register(live)

        assert await push_hub.send_to_user("user-p1", _payload()) == 1
        assert broken.closed
        assert push_hub.connections_for("user-p1") == {live}

    async def test_send_to_users_partial_delivery(self, push_hub, fake_connection):
        p1 = fake_connection("user-p1")
        await push_hub.register(p1)

        sent = await push_hub.send_to_users(["user-p1", "user-p2", "user-p1"], _payload())
        assert sent == 1
        assert len(p1.sent) == 1

    async def test_dict_payload(self, push_hub, fake_connection):
        conn = fake_connection("user-c")
        await push_hub.register(conn)
        await push_hub.send_to_user("user-c", {"type": "task_accepted", "data": {}})
        assert json.loads(conn.sent[0])["type"] == "task_accepted"


class TestHeartbeat:
    async def test_alive_connections_are_probed(self, push_hub, fake_connection):
        conn = fake_connection("user-p1")
        await push_hub.register(conn)

        assert await push_hub.heartbeat_once() == 0
        assert conn.pings == 1
        assert conn.alive is False

    async def test_unresponsive_connection_evicted_next_round(self, push_hub, fake_connection):
        silent = fake_connection("user-p1")
        responsive = fake_connection("user-p2")
        await push_hub.register(silent)
        await push_hub.register(responsive)

        await push_hub.heartbeat_once()
        responsive.mark_alive()
        evicted = await push_hub.heartbeat_once()

        assert evicted == 1
        assert silent.closed
        assert not push_hub.is_online("user-p1")
        assert push_hub.is_online("user-p2")
        assert responsive.pings == 2

    async def test_run_heartbeat_loops_until_cancelled(self, push_hub, fake_connection):
        conn = fake_connection("user-p1")
        await push_hub.register(conn)

        loop_task = asyncio.create_task(push_hub.run_heartbeat(0.01))
        await asyncio.sleep(0.1)
        loop_task.cancel()
        await asyncio.gather(loop_task, return_exceptions=True)

        # 首轮探测后没有回应，随后一轮被驱逐
        assert conn.closed
        assert push_hub.connection_count() == 0

    async def test_close_all(self, push_hub, fake_connection):
        conns = [fake_connection("user-p1"), fake_connection("user-p2")]
        for conn in conns:
            await push_hub.register(conn)
        await push_hub.close_all()
        assert all(c.closed for c in conns)
        assert push_hub.connection_count() == 0


class TestStalledPeer:
    """对端停止读取时写入阻塞：按超时移除，不拖住其他连接"""

    async def test_heartbeat_round_bounded_by_send_timeout(self, fake_connection):
        hub = PushHub(send_timeout_s=0.05)
        stalled = fake_connection("user-p1", hang=True)
        dead = fake_connection("user-p2")
        dead.alive = False
        healthy = fake_connection("user-p3")
        for conn in (stalled, dead, healthy):
            await hub.register(conn)

        evicted = await asyncio.wait_for(hub.heartbeat_once(), 1)

        assert evicted == 2
        assert not hub.is_online("user-p1")
        assert not hub.is_online("user-p2")
        assert dead.closed
        assert hub.connections_for("user-p3") == {healthy}
        assert healthy.pings == 1

    async def test_stalled_recipient_does_not_block_fan_out(self, fake_connection):
        hub = PushHub(send_timeout_s=0.05)
        stalled = fake_connection("user-p1", hang=True)
        live = fake_connection("user-p2")
        await hub.register(stalled)
        await hub.register(live)

        sent = await asyncio.wait_for(
            hub.send_to_users(["user-p1", "user-p2"], _payload()), 1
        )

        assert sent == 1
        assert len(live.sent) == 1
        assert not hub.is_online("user-p1")

    async def test_close_all_does_not_hang(self, fake_connection):
        hub = PushHub(send_timeout_s=0.05)
        stalled = fake_connection("user-p1", hang=True)
        await hub.register(stalled)

        await asyncio.wait_for(hub.close_all(), 1)

        assert stalled.closed
        assert hub.connection_count() == 0


class TestSSEConnection:
    async def test_full_queue_is_not_writable(self):
        conn = SSEConnection("user-p1", queue_maxsize=2)
        await conn.send_text("a")
        assert conn.is_writable()
        await conn.send_text("b")
        assert not conn.is_writable()

    async def test_hub_skips_full_sse_queue(self, push_hub):
        conn = SSEConnection("user-p1", queue_maxsize=1)
        await push_hub.register(conn)
        assert await push_hub.send_to_user("user-p1", _payload()) == 1
        assert await push_hub.send_to_user("user-p1", _payload()) == 0
        assert push_hub.is_online("user-p1")

    async def test_events_yield_notifications_and_pings(self):
        conn = SSEConnection("user-p1")
        stream = conn.events()
        await conn.send_text('{"type": "new_task"}')
        conn.alive = False
        await conn.ping()

        assert await stream.__anext__() == {
            "event": "notification",
            "data": '{"type": "new_task"}',
        }
        assert await stream.__anext__() == {"event": "ping", "data": '{"type": "ping"}'}
        # 消费端取走消息即视为存活
        assert conn.alive is True

        await conn.close()
        assert [event async for event in stream] == []

    async def test_close_discards_backlog(self):
        conn = SSEConnection("user-p1", queue_maxsize=1)
        await conn.send_text("stale")
        await conn.close()
        assert conn.closed
        assert not conn.is_writable()
        assert [event async for event in conn.events()] == []
