"""PushHub -- 按用户索引的实时推送连接注册表

每个用户可持有多个活动连接（多标签页 / 多设备）。
推送是尽力而为的低延迟提示：离线用户、不可写连接都不是错误，
持久化的 Notification 才是事实来源。

心跳：每轮探测前，上一轮未回应的连接被关闭并移除；
其余连接标记为待回应并发送 ping。

每次写入 / 探测 / 关闭都有超时（send_timeout_s），且对各连接并发执行：
对端停止读取导致写入阻塞时，该连接按写入失败处理，不会拖住其他连接。
"""

import asyncio
import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterable
from typing import Any

import structlog
from pydantic import BaseModel
from starlette.websockets import WebSocket, WebSocketState

log = structlog.get_logger()

PING_FRAME = json.dumps({"type": "ping"})
PONG_FRAME = json.dumps({"type": "pong"})

# SSE 队列内的控制哨兵
_PING = object()
_CLOSE = object()


class PushConnection(ABC):
    """单个推送连接（一个用户的一个标签页 / 设备）"""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        # 新连接视为存活；心跳每轮先置 False 再探测
        self.alive = True

    def mark_alive(self) -> None:
        self.alive = True

    @abstractmethod
    def is_writable(self) -> bool:
        """连接当前是否可写（未关闭且未阻塞）"""

    @abstractmethod
    async def send_text(self, text: str) -> None:
        """写入一条已序列化的消息"""

    @abstractmethod
    async def ping(self) -> None:
        """发送心跳探测"""

    @abstractmethod
    async def close(self) -> None:
        """关闭连接（幂等）"""


class WebSocketConnection(PushConnection):
    """WebSocket 传输 -- 探测为 {"type":"ping"} 文本帧，任何入站帧都视为存活"""

    def __init__(self, websocket: WebSocket, user_id: str) -> None:
        super().__init__(user_id)
        self._websocket = websocket

    def is_writable(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, text: str) -> None:
        await self._websocket.send_text(text)

    async def ping(self) -> None:
        if self.is_writable():
            await self._websocket.send_text(PING_FRAME)

    async def close(self) -> None:
        if self.is_writable():
            await self._websocket.close(code=1001)


class SSEConnection(PushConnection):
    """SSE 传输 -- 消息经有界队列交给响应生成器

    消费端从队列取出任何条目即视为存活；队列满时不可写。
    """

    def __init__(self, user_id: str, queue_maxsize: int = 100) -> None:
        super().__init__(user_id)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def is_writable(self) -> bool:
        return not self._closed and not self._queue.full()

    async def send_text(self, text: str) -> None:
        self._queue.put_nowait(text)

    async def ping(self) -> None:
        if self.is_writable():
            self._queue.put_nowait(_PING)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # 丢弃积压消息，保证生成器能取到关闭哨兵
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE)

    async def events(self):
        """sse-starlette 事件生成器：notification 消息与 ping 探测"""
        while True:
            item = await self._queue.get()
            self.mark_alive()
            if item is _CLOSE:
                return
            if item is _PING:
                yield {"event": "ping", "data": PING_FRAME}
            else:
                yield {"event": "notification", "data": item}


def serialize_payload(payload: BaseModel | dict[str, Any]) -> str:
    """序列化推送消息（每次发送只序列化一次）"""
    if isinstance(payload, BaseModel):
        return payload.model_dump_json()
    return json.dumps(payload, ensure_ascii=False)


class PushHub:
    """实时推送注册表 -- user_id -> 活动连接集合"""

    def __init__(self, send_timeout_s: float = 5.0) -> None:
        self._connections: dict[str, set[PushConnection]] = {}
        self._lock = asyncio.Lock()
        self._send_timeout_s = send_timeout_s

    async def register(self, conn: PushConnection) -> None:
        """登记连接"""
        async with self._lock:
            self._connections.setdefault(conn.user_id, set()).add(conn)
        log.info("push_connection_registered", user_id=conn.user_id)

    async def unregister(self, conn: PushConnection) -> bool:
        """注销连接；用户最后一个连接注销时移除该用户条目

        Returns:
            True 如果连接此前处于登记状态
        """
        async with self._lock:
            conns = self._connections.get(conn.user_id)
            if conns is None or conn not in conns:
                return False
            conns.discard(conn)
            if not conns:
                del self._connections[conn.user_id]
        log.info("push_connection_unregistered", user_id=conn.user_id)
        return True

    def connection_count(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    def connections_for(self, user_id: str) -> set[PushConnection]:
        return set(self._connections.get(user_id, ()))

    def is_online(self, user_id: str) -> bool:
        return user_id in self._connections

    async def send_to_user(self, user_id: str, payload: BaseModel | dict[str, Any]) -> int:
        """向单个用户的全部可写连接推送

        Returns:
            实际写入的连接数（离线用户为 0）
        """
        return await self._deliver([user_id], serialize_payload(payload))

    async def send_to_users(
        self,
        user_ids: Iterable[str],
        payload: BaseModel | dict[str, Any],
    ) -> int:
        """向多个用户推送同一条消息（整体只序列化一次）"""
        return await self._deliver(set(user_ids), serialize_payload(payload))

    async def _deliver(self, user_ids: Iterable[str], text: str) -> int:
        async with self._lock:
            targets = [
                conn
                for user_id in user_ids
                for conn in self._connections.get(user_id, ())
                if conn.is_writable()
            ]

        results = await asyncio.gather(
            *(self._attempt(conn, conn.send_text(text), "push_write_failed") for conn in targets)
        )
        await self._drop_all([conn for conn, ok in zip(targets, results) if not ok])
        return sum(results)

    async def _attempt(self, conn: PushConnection, op: Awaitable[None], event: str) -> bool:
        """在超时内完成一次写入 / 探测；超时与异常同样视为失败"""
        try:
            async with asyncio.timeout(self._send_timeout_s):
                await op
        except Exception as e:
            log.warning(event, user_id=conn.user_id, error_type=type(e).__name__)
            return False
        return True

    async def _drop(self, conn: PushConnection) -> None:
        await self.unregister(conn)
        await self._close(conn)

    async def _drop_all(self, conns: list[PushConnection]) -> None:
        await asyncio.gather(*(self._drop(conn) for conn in conns))

    async def _close(self, conn: PushConnection) -> None:
        try:
            async with asyncio.timeout(self._send_timeout_s):
                await conn.close()
        except Exception as e:
            log.debug("push_close_failed", user_id=conn.user_id, error_type=type(e).__name__)

    async def heartbeat_once(self) -> int:
        """执行一轮心跳

        Returns:
            本轮被驱逐的连接数（上一轮未回应 + 本轮探测失败或超时）
        """
        async with self._lock:
            snapshot = [conn for conns in self._connections.values() for conn in conns]

        stale = [conn for conn in snapshot if not conn.alive]
        probed = [conn for conn in snapshot if conn.alive]
        for conn in stale:
            log.info("push_connection_evicted", user_id=conn.user_id)
        for conn in probed:
            conn.alive = False

        results = await asyncio.gather(
            *(self._attempt(conn, conn.ping(), "push_ping_failed") for conn in probed)
        )
        failed = [conn for conn, ok in zip(probed, results) if not ok]
        await self._drop_all(stale + failed)
        return len(stale) + len(failed)

    async def run_heartbeat(self, interval_s: float) -> None:
        """心跳循环，由应用 lifespan 启动并在关闭时取消"""
        while True:
            await asyncio.sleep(interval_s)
            try:
                await self.heartbeat_once()
            except Exception as e:
                log.error("push_heartbeat_error", error_type=type(e).__name__)

    async def close_all(self) -> None:
        """关闭全部连接（应用关闭时）"""
        async with self._lock:
            snapshot = [conn for conns in self._connections.values() for conn in conns]
            self._connections.clear()
        await asyncio.gather(*(self._close(conn) for conn in snapshot))
