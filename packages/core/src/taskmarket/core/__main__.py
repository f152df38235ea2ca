"""CLI 入口模块 -- python -m taskmarket.core <command>

支持的命令：
  init-db    在配置的路径上创建数据库表结构
  seed-demo  写入演示分类、客户与服务商，并打印各用户的会话令牌
  stats      按状态统计任务数
"""

import asyncio
import secrets
import sys
from datetime import UTC, datetime

from ulid import ULID

from .config import get_db_path
from .models import ServiceCategory, ServiceProvider, User

_COMMANDS = {
    "init-db": "在配置的路径上创建数据库表结构",
    "seed-demo": "写入演示分类、客户与服务商，并打印会话令牌",
    "stats": "按状态统计任务数",
}


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2 or sys.argv[1] not in _COMMANDS:
        if len(sys.argv) >= 2:
            print(f"未知命令: {sys.argv[1]}")
        print("用法: python -m taskmarket.core <command>")
        print("命令:")
        for name, help_text in _COMMANDS.items():
            print(f"  {name:<10} {help_text}")
        sys.exit(1)

    command = sys.argv[1]
    if command == "init-db":
        asyncio.run(init_database())
    elif command == "seed-demo":
        asyncio.run(seed_demo())
    else:
        asyncio.run(print_stats())


async def init_database() -> None:
    """创建表结构（幂等）"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    store_group = await create_store_group(db_path)
    await store_group.conn.close()
    print("初始化完成")


async def seed_demo() -> None:
    """写入演示数据：Lawn Care / Handyman 两个分类、一个客户、三个服务商"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    now = datetime.now(UTC)
    directory = store_group.directory_store
    tokens: list[tuple[str, str]] = []

    try:
        async with store_group.transaction():
            lawn = ServiceCategory(category_id=str(ULID()), name="Lawn Care")
            handyman = ServiceCategory(category_id=str(ULID()), name="Handyman")
            await directory.create_category(lawn)
            await directory.create_category(handyman)

            client = User(
                user_id=str(ULID()),
                username=f"client-{secrets.token_hex(3)}",
                first_name="Casey",
                last_name="Client",
                created_at=now,
            )
            await directory.create_user(client)
            users = [client]

            for first_name, category in (
                ("Pat", lawn),
                ("Robin", lawn),
                ("Sam", handyman),
            ):
                user = User(
                    user_id=str(ULID()),
                    username=f"{first_name.lower()}-{secrets.token_hex(3)}",
                    first_name=first_name,
                    last_name="Provider",
                    is_service_provider=True,
                    created_at=now,
                )
                await directory.create_user(user)
                await directory.create_service_provider(
                    ServiceProvider(
                        provider_id=str(ULID()),
                        user_id=user.user_id,
                        category_id=category.category_id,
                        hourly_rate=40.0,
                    )
                )
                users.append(user)

            for user in users:
                token = secrets.token_urlsafe(24)
                await directory.create_session(token, user.user_id, now)
                tokens.append((user.username, token))

        print(f"分类: Lawn Care={lawn.category_id} Handyman={handyman.category_id}")
        for username, token in tokens:
            print(f"{username}: {token}")
    finally:
        await store_group.conn.close()


async def print_stats() -> None:
    """按状态打印任务数"""
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        counts = await store_group.task_store.count_by_status()
    finally:
        await store_group.conn.close()

    if not counts:
        print("暂无任务")
        return
    for status, count in sorted(counts.items()):
        print(f"{status:<12} {count}")


if __name__ == "__main__":
    main()
