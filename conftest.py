"""全局 pytest 配置 -- 临时 SQLite 数据库 + 演示市场数据 fixture"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest_asyncio
from taskmarket.core.models import ServiceCategory, ServiceProvider, User
from taskmarket.core.store import StoreGroup, create_store_group


@dataclass
class Marketplace:
    """Lawn Care 场景：客户 C，Lawn Care 服务商 P1 / P2，Handyman 服务商 P3"""

    lawn_care: ServiceCategory
    handyman: ServiceCategory
    client: User
    users: dict[str, User] = field(default_factory=dict)
    providers: dict[str, ServiceProvider] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)

    def auth(self, name: str) -> dict[str, str]:
        """name 为 "C" / "P1" / "P2" / "P3"，返回 Authorization 头"""
        return {"Authorization": f"Bearer {self.tokens[name]}"}


async def seed_marketplace(store_group: StoreGroup) -> Marketplace:
    """写入 Lawn Care 场景所需的分类、用户、服务商与会话"""
    now = datetime.now(UTC)
    directory = store_group.directory_store
    lawn_care = ServiceCategory(category_id="cat-lawn", name="Lawn Care")
    handyman = ServiceCategory(category_id="cat-handy", name="Handyman")
    client = User(
        user_id="user-c",
        username="casey",
        first_name="Casey",
        last_name="Client",
        created_at=now,
    )
    market = Marketplace(lawn_care=lawn_care, handyman=handyman, client=client)
    market.users["C"] = client

    async with store_group.transaction():
        await directory.create_category(lawn_care)
        await directory.create_category(handyman)
        await directory.create_user(client)

        for name, first_name, category in (
            ("P1", "Pat", lawn_care),
            ("P2", "Robin", lawn_care),
            ("P3", "Sam", handyman),
        ):
            user = User(
                user_id=f"user-{name.lower()}",
                username=first_name.lower(),
                first_name=first_name,
                last_name="Provider",
                is_service_provider=True,
                created_at=now,
            )
            provider = ServiceProvider(
                provider_id=f"prov-{name.lower()}",
                user_id=user.user_id,
                category_id=category.category_id,
                hourly_rate=35.0,
            )
            await directory.create_user(user)
            await directory.create_service_provider(provider)
            market.users[name] = user
            market.providers[name] = provider

        for name, user in market.users.items():
            token = f"token-{name.lower()}"
            await directory.create_session(token, user.user_id, now)
            market.tokens[name] = token

    return market


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def store_group(tmp_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """提供已初始化的 StoreGroup"""
    group = await create_store_group(str(tmp_db_path))
    yield group
    await group.conn.close()


@pytest_asyncio.fixture
async def marketplace(store_group: StoreGroup) -> Marketplace:
    """已写入 Lawn Care 场景数据的市场"""
    return await seed_marketplace(store_group)
