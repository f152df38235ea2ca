"""apps/gateway 测试配置 -- httpx AsyncClient + 推送连接替身"""

import asyncio
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskmarket.gateway.config import PushConfig
from taskmarket.gateway.services.notification_service import NotificationService
from taskmarket.gateway.services.push_hub import PushConnection, PushHub


class FakeConnection(PushConnection):
    """记录写入内容的推送连接替身

    hang=True 模拟停止读取的对端：写入 / 探测 / 关闭永不返回。
    """

    def __init__(
        self,
        user_id: str,
        writable: bool = True,
        fail: bool = False,
        hang: bool = False,
    ) -> None:
        super().__init__(user_id)
        self.writable = writable
        self.fail = fail
        self.hang = hang
        self.sent: list[str] = []
        self.pings = 0
        self.closed = False

    def is_writable(self) -> bool:
        return self.writable and not self.closed

    async def send_text(self, text: str) -> None:
        await self._maybe_hang()
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.sent.append(text)

    async def ping(self) -> None:
        self.pings += 1
        await self._maybe_hang()

    async def close(self) -> None:
        self.closed = True
        await self._maybe_hang()

    async def _maybe_hang(self) -> None:
        if self.hang:
            await asyncio.Event().wait()


@pytest.fixture
def fake_connection():
    """FakeConnection 工厂"""
    return FakeConnection


@pytest.fixture
def push_hub() -> PushHub:
    return PushHub()


@pytest_asyncio.fixture
async def app(store_group, push_hub, monkeypatch):
    """创建测试用 FastAPI app 实例（绕过 lifespan，手动注入 state）"""
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from taskmarket.gateway.main import create_app

    application = create_app()
    application.state.store_group = store_group
    application.state.push_hub = push_hub
    application.state.push_config = PushConfig()
    yield application

    await NotificationService.drain_background_pushes()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
