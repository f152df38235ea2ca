"""TaskStore SQLite 实现

接单通过单条条件 UPDATE 完成（WHERE accepted_by_id IS NULL），
返回受影响行数，0 行即表示竞争失败；不使用“先读后写”。
方法不自动提交事务，由调用方管理。
"""

from collections.abc import Iterable
from datetime import datetime

import aiosqlite

from ..models.enums import TaskStatus
from ..models.task import Task

# 允许在状态流转时一并写入的时间戳列
_TIMESTAMP_COLUMNS = frozenset({"completed_at", "cancelled_at"})


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            """
            INSERT INTO tasks (task_id, client_id, category_id, title, description,
                               location, budget, status, accepted_by_id, accepted_at,
                               created_at, updated_at, completed_at, cancelled_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                task.client_id,
                task.category_id,
                task.title,
                task.description,
                task.location,
                task.budget,
                task.status.value,
                task.accepted_by_id,
                _iso(task.accepted_at),
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
                _iso(task.completed_at),
                _iso(task.cancelled_at),
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            "SELECT * FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        status: str | None = None,
        category_id: str | None = None,
        client_id: str | None = None,
    ) -> list[Task]:
        """查询任务列表，支持按状态/分类/客户筛选，按 created_at 倒序"""
        clauses: list[str] = []
        params: list[str] = []
        if status:
            clauses.append("status = ?")
            params.append(status)
        if category_id:
            clauses.append("category_id = ?")
            params.append(category_id)
        if client_id:
            clauses.append("client_id = ?")
            params.append(client_id)

        sql = "SELECT * FROM tasks"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC"

        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def count_by_status(self) -> dict[str, int]:
        """按状态统计任务数"""
        cursor = await self._conn.execute(
            "SELECT status, COUNT(*) FROM tasks GROUP BY status"
        )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    async def accept_task_conditional(
        self,
        task_id: str,
        provider_id: str,
        accepted_at: datetime,
    ) -> int:
        """条件接单：仅当任务仍为 open 且未被占有时写入

        Returns:
            受影响行数（1 表示本次占有成功，0 表示已被占有或状态不符）
        """
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET status = ?, accepted_by_id = ?, accepted_at = ?, updated_at = ?
            WHERE task_id = ? AND accepted_by_id IS NULL AND status = ?
            """,
            (
                TaskStatus.ACCEPTED.value,
                provider_id,
                accepted_at.isoformat(),
                accepted_at.isoformat(),
                task_id,
                TaskStatus.OPEN.value,
            ),
        )
        return cursor.rowcount

    async def transition_task_conditional(
        self,
        task_id: str,
        from_statuses: Iterable[TaskStatus],
        to_status: TaskStatus,
        updated_at: datetime,
        **timestamps: datetime,
    ) -> int:
        """条件状态流转：仅当当前状态属于 from_statuses 时更新

        accepted_by_id 不在可写列之内，接单后不会被改写。

        Args:
            task_id: 任务 ID
            from_statuses: 允许的来源状态
            to_status: 目标状态
            updated_at: 更新时间
            **timestamps: 附带写入的时间戳列（completed_at / cancelled_at）

        Returns:
            受影响行数
        """
        unknown = set(timestamps) - _TIMESTAMP_COLUMNS
        if unknown:
            raise ValueError(f"unsupported timestamp columns: {sorted(unknown)}")

        sources = [s.value for s in from_statuses]
        if not sources:
            return 0

        assignments = ["status = ?", "updated_at = ?"]
        params: list[str] = [to_status.value, updated_at.isoformat()]
        for column, value in sorted(timestamps.items()):
            assignments.append(f"{column} = ?")
            params.append(value.isoformat())

        placeholders = ", ".join("?" for _ in sources)
        cursor = await self._conn.execute(
            f"""
            UPDATE tasks
            SET {", ".join(assignments)}
            WHERE task_id = ? AND status IN ({placeholders})
            """,
            (*params, task_id, *sources),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row["task_id"],
            client_id=row["client_id"],
            category_id=row["category_id"],
            title=row["title"],
            description=row["description"],
            location=row["location"],
            budget=row["budget"],
            status=row["status"],
            accepted_by_id=row["accepted_by_id"],
            accepted_at=_parse(row["accepted_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            completed_at=_parse(row["completed_at"]),
            cancelled_at=_parse(row["cancelled_at"]),
        )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
