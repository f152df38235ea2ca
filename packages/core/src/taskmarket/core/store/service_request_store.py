"""ServiceRequestStore SQLite 实现"""

from collections.abc import Iterable
from datetime import datetime

import aiosqlite

from ..models.enums import ServiceRequestStatus
from ..models.service_request import ServiceRequest


class SqliteServiceRequestStore:
    """ServiceRequestStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_request(self, request: ServiceRequest) -> None:
        await self._conn.execute(
            """
            INSERT INTO service_requests (request_id, task_id, provider_id, client_id,
                                          status, message, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                request.request_id,
                request.task_id,
                request.provider_id,
                request.client_id,
                request.status.value,
                request.message,
                request.created_at.isoformat(),
                request.updated_at.isoformat(),
            ),
        )

    async def get_request(self, request_id: str) -> ServiceRequest | None:
        cursor = await self._conn.execute(
            "SELECT * FROM service_requests WHERE request_id = ?",
            (request_id,),
        )
        row = await cursor.fetchone()
        return self._row_to_request(row) if row else None

    async def list_for_client(self, client_id: str) -> list[ServiceRequest]:
        cursor = await self._conn.execute(
            "SELECT * FROM service_requests WHERE client_id = ? ORDER BY created_at DESC",
            (client_id,),
        )
        return [self._row_to_request(row) for row in await cursor.fetchall()]

    async def list_for_provider(self, provider_id: str) -> list[ServiceRequest]:
        cursor = await self._conn.execute(
            "SELECT * FROM service_requests WHERE provider_id = ? ORDER BY created_at DESC",
            (provider_id,),
        )
        return [self._row_to_request(row) for row in await cursor.fetchall()]

    async def update_status_conditional(
        self,
        request_id: str,
        from_statuses: Iterable[ServiceRequestStatus],
        to_status: ServiceRequestStatus,
        updated_at: datetime,
    ) -> int:
        """条件更新状态，返回受影响行数"""
        sources = [s.value for s in from_statuses]
        if not sources:
            return 0
        placeholders = ", ".join("?" for _ in sources)
        cursor = await self._conn.execute(
            f"""
            UPDATE service_requests
            SET status = ?, updated_at = ?
            WHERE request_id = ? AND status IN ({placeholders})
            """,
            (to_status.value, updated_at.isoformat(), request_id, *sources),
        )
        return cursor.rowcount

    @staticmethod
    def _row_to_request(row: aiosqlite.Row) -> ServiceRequest:
        return ServiceRequest(
            request_id=row["request_id"],
            task_id=row["task_id"],
            provider_id=row["provider_id"],
            client_id=row["client_id"],
            status=ServiceRequestStatus(row["status"]),
            message=row["message"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
