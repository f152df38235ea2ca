"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskmarket.gateway.config import PushConfig
from taskmarket.gateway.services.notification_service import NotificationService
from taskmarket.gateway.services.push_hub import PushHub


@pytest_asyncio.fixture
async def integration_app(store_group, tmp_db_path, monkeypatch):
    """集成测试用 FastAPI app"""
    monkeypatch.setenv("TASKMARKET_DB_PATH", str(tmp_db_path))
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from taskmarket.gateway.main import create_app

    app = create_app()
    app.state.store_group = store_group
    app.state.push_hub = PushHub()
    app.state.push_config = PushConfig()

    yield app

    await NotificationService.drain_background_pushes()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac
