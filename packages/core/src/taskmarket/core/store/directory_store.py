"""DirectoryStore SQLite 实现 -- 用户 / 会话 / 分类 / 服务商

读取接口供核心使用；create_* 方法供管理 CLI 与测试写入目录数据。
方法不自动提交事务。
"""

from datetime import datetime

import aiosqlite

from ..models.directory import ServiceCategory, ServiceProvider, User


class SqliteDirectoryStore:
    """DirectoryStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    # ---- users / sessions ----

    async def create_user(self, user: User) -> None:
        await self._conn.execute(
            """
            INSERT INTO users (user_id, username, first_name, last_name,
                               is_service_provider, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                user.user_id,
                user.username,
                user.first_name,
                user.last_name,
                int(user.is_service_provider),
                user.created_at.isoformat(),
            ),
        )

    async def get_user(self, user_id: str) -> User | None:
        cursor = await self._conn.execute(
            "SELECT * FROM users WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return User(
            user_id=row["user_id"],
            username=row["username"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            is_service_provider=bool(row["is_service_provider"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def create_session(self, token: str, user_id: str, created_at: datetime) -> None:
        await self._conn.execute(
            "INSERT INTO sessions (token, user_id, created_at) VALUES (?, ?, ?)",
            (token, user_id, created_at.isoformat()),
        )

    async def get_session_user_id(self, token: str) -> str | None:
        """根据会话令牌解析 user_id，无效令牌返回 None"""
        cursor = await self._conn.execute(
            "SELECT user_id FROM sessions WHERE token = ?",
            (token,),
        )
        row = await cursor.fetchone()
        return row["user_id"] if row else None

    # ---- categories ----

    async def create_category(self, category: ServiceCategory) -> None:
        await self._conn.execute(
            "INSERT INTO service_categories (category_id, name, description) VALUES (?, ?, ?)",
            (category.category_id, category.name, category.description),
        )

    async def get_category(self, category_id: str) -> ServiceCategory | None:
        cursor = await self._conn.execute(
            "SELECT * FROM service_categories WHERE category_id = ?",
            (category_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return ServiceCategory(
            category_id=row["category_id"],
            name=row["name"],
            description=row["description"],
        )

    # ---- providers ----

    async def create_service_provider(self, provider: ServiceProvider) -> None:
        await self._conn.execute(
            """
            INSERT INTO service_providers (provider_id, user_id, category_id,
                                           hourly_rate, bio, rating, completed_jobs)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                provider.provider_id,
                provider.user_id,
                provider.category_id,
                provider.hourly_rate,
                provider.bio,
                provider.rating,
                provider.completed_jobs,
            ),
        )

    async def get_service_provider(self, provider_id: str) -> ServiceProvider | None:
        cursor = await self._conn.execute(
            "SELECT * FROM service_providers WHERE provider_id = ?",
            (provider_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_provider(row) if row else None

    async def get_service_provider_by_user_id(self, user_id: str) -> ServiceProvider | None:
        cursor = await self._conn.execute(
            "SELECT * FROM service_providers WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_provider(row) if row else None

    async def get_service_providers_by_category(
        self, category_id: str
    ) -> list[ServiceProvider]:
        """查询某分类下的全部服务商（接单资格判定依据）"""
        cursor = await self._conn.execute(
            "SELECT * FROM service_providers WHERE category_id = ? ORDER BY provider_id",
            (category_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_provider(row) for row in rows]

    async def increment_completed_jobs(self, provider_id: str) -> int:
        """完成任务后累加服务商的 completed_jobs，返回受影响行数"""
        cursor = await self._conn.execute(
            """
            UPDATE service_providers
            SET completed_jobs = completed_jobs + 1
            WHERE provider_id = ?
            """,
            (provider_id,),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_provider(row: aiosqlite.Row) -> ServiceProvider:
        return ServiceProvider(
            provider_id=row["provider_id"],
            user_id=row["user_id"],
            category_id=row["category_id"],
            hourly_rate=row["hourly_rate"],
            bio=row["bio"],
            rating=row["rating"],
            completed_jobs=row["completed_jobs"],
        )
