"""Store Protocol 接口定义

定义 TaskStore、DirectoryStore、NotificationStore、ServiceRequestStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, runtime_checkable

from ..models.directory import ServiceCategory, ServiceProvider, User
from ..models.enums import ServiceRequestStatus, TaskStatus
from ..models.notification import Notification
from ..models.service_request import ServiceRequest
from ..models.task import Task


@runtime_checkable
class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(
        self,
        status: str | None = None,
        category_id: str | None = None,
        client_id: str | None = None,
    ) -> list[Task]:
        """查询任务列表"""
        ...

    async def accept_task_conditional(
        self,
        task_id: str,
        provider_id: str,
        accepted_at: datetime,
    ) -> int:
        """原子条件接单，返回受影响行数"""
        ...

    async def transition_task_conditional(
        self,
        task_id: str,
        from_statuses: Iterable[TaskStatus],
        to_status: TaskStatus,
        updated_at: datetime,
        **timestamps: datetime,
    ) -> int:
        """原子条件状态流转，返回受影响行数"""
        ...


@runtime_checkable
class DirectoryStore(Protocol):
    """用户目录查询接口（用户、会话、分类、服务商）"""

    async def get_user(self, user_id: str) -> User | None:
        ...

    async def get_session_user_id(self, token: str) -> str | None:
        """会话令牌 -> user_id"""
        ...

    async def get_category(self, category_id: str) -> ServiceCategory | None:
        ...

    async def get_service_provider(self, provider_id: str) -> ServiceProvider | None:
        ...

    async def get_service_provider_by_user_id(self, user_id: str) -> ServiceProvider | None:
        ...

    async def get_service_providers_by_category(
        self, category_id: str
    ) -> list[ServiceProvider]:
        ...

    async def increment_completed_jobs(self, provider_id: str) -> int:
        ...


@runtime_checkable
class NotificationStore(Protocol):
    """Notification 存储接口 -- 只追加，read 标记除外"""

    async def create_notification(self, notification: Notification) -> None:
        ...

    async def list_for_user(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 100,
    ) -> list[Notification]:
        ...

    async def count_unread(self, user_id: str) -> int:
        ...

    async def mark_read(self, notification_id: str, user_id: str) -> int:
        ...


@runtime_checkable
class ServiceRequestStore(Protocol):
    """ServiceRequest 存储接口"""

    async def create_request(self, request: ServiceRequest) -> None:
        ...

    async def get_request(self, request_id: str) -> ServiceRequest | None:
        ...

    async def list_for_client(self, client_id: str) -> list[ServiceRequest]:
        ...

    async def list_for_provider(self, provider_id: str) -> list[ServiceRequest]:
        ...

    async def update_status_conditional(
        self,
        request_id: str,
        from_statuses: Iterable[ServiceRequestStatus],
        to_status: ServiceRequestStatus,
        updated_at: datetime,
    ) -> int:
        ...
