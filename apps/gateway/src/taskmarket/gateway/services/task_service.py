"""TaskService -- 任务生命周期控制

实现任务的发布、接单、开工、完成、取消：
1. 所有状态写入均为条件 UPDATE（WHERE 当前状态），并发请求不会重复生效
2. 接单的排他性由 accepted_by_id IS NULL 守卫保证，0 行即竞争失败
3. 状态写入提交之后才进行通知扇出；扇出失败只记录日志
"""

from datetime import UTC, datetime

import structlog
from taskmarket.core.config import TASK_TITLE_MAX_LENGTH
from taskmarket.core.exceptions import (
    AlreadyAcceptedError,
    CategoryMismatchError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    TaskValidationError,
)
from taskmarket.core.models import (
    NotificationType,
    ServiceProvider,
    Task,
    TaskStatus,
    sources_for,
)
from taskmarket.core.store import StoreGroup, complete_task_and_credit_provider
from ulid import ULID

from .notification_service import NotificationService
from .push_hub import PushHub

log = structlog.get_logger()


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup, push_hub: PushHub | None = None) -> None:
        self._stores = store_group
        self._notifications = NotificationService(store_group, push_hub)

    # ---- 查询 ----

    async def get_task(self, task_id: str) -> Task | None:
        return await self._stores.task_store.get_task(task_id)

    async def list_tasks(
        self,
        status: str | None = None,
        category_id: str | None = None,
        client_id: str | None = None,
    ) -> list[Task]:
        return await self._stores.task_store.list_tasks(
            status=status, category_id=category_id, client_id=client_id
        )

    async def _require_task(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise NotFoundError(
                f"Task with id {task_id} does not exist",
                code="TASK_NOT_FOUND",
            )
        return task

    async def _require_provider(self, provider_id: str) -> ServiceProvider:
        provider = await self._stores.directory_store.get_service_provider(provider_id)
        if provider is None:
            raise NotFoundError(
                f"Service provider with id {provider_id} does not exist",
                code="PROVIDER_NOT_FOUND",
            )
        return provider

    # ---- 发布 ----

    async def create_task(
        self,
        client_id: str,
        category_id: str,
        title: str,
        description: str,
        location: str,
        budget: float | None = None,
    ) -> Task:
        """发布任务，并通知该分类下的所有服务商

        Raises:
            TaskValidationError: 字段为空、标题过长、预算为负或分类不存在
        """
        for field, value in (
            ("title", title),
            ("description", description),
            ("location", location),
        ):
            if not value or not value.strip():
                raise TaskValidationError(f"{field} must not be blank", field=field)
        if len(title) > TASK_TITLE_MAX_LENGTH:
            raise TaskValidationError(
                f"title must be at most {TASK_TITLE_MAX_LENGTH} characters",
                field="title",
            )
        if budget is not None and budget < 0:
            raise TaskValidationError("budget must not be negative", field="budget")

        category = await self._stores.directory_store.get_category(category_id)
        if category is None:
            raise TaskValidationError(
                f"Service category {category_id} does not exist",
                field="category_id",
            )

        now = datetime.now(UTC)
        task = Task(
            task_id=str(ULID()),
            client_id=client_id,
            category_id=category_id,
            title=title.strip(),
            description=description.strip(),
            location=location.strip(),
            budget=budget,
            created_at=now,
            updated_at=now,
        )
        async with self._stores.transaction():
            await self._stores.task_store.create_task(task)

        log.info(
            "task_created",
            task_id=task.task_id,
            category_id=category_id,
            client_id=client_id,
        )

        providers = await self._stores.directory_store.get_service_providers_by_category(
            category_id
        )
        await self._fan_out(
            task.task_id,
            [p.user_id for p in providers],
            NotificationType.NEW_TASK,
            "New Task Available",
            f"New task: {task.title}",
            {"taskId": task.task_id},
        )
        return task

    # ---- 接单 ----

    async def accept_task(self, task_id: str, provider_id: str) -> Task:
        """服务商接单 -- 单条条件 UPDATE 决定唯一胜者

        Raises:
            NotFoundError: 任务或服务商不存在
            CategoryMismatchError: 服务商分类与任务分类不一致
            AlreadyAcceptedError: 任务已被其他服务商占有
            InvalidTransitionError: 任务不在 open 状态（如已取消）
        """
        task = await self._require_task(task_id)
        provider = await self._require_provider(provider_id)
        if provider.category_id != task.category_id:
            raise CategoryMismatchError(provider.category_id, task.category_id)

        async with self._stores.transaction():
            rows = await self._stores.task_store.accept_task_conditional(
                task_id, provider_id, datetime.now(UTC)
            )

        if rows == 0:
            current = await self._require_task(task_id)
            if current.accepted_by_id is not None:
                log.info(
                    "task_accept_lost_race",
                    task_id=task_id,
                    provider_id=provider_id,
                    winner_id=current.accepted_by_id,
                )
                raise AlreadyAcceptedError(task_id)
            raise InvalidTransitionError(
                task_id, current.status.value, TaskStatus.ACCEPTED.value
            )

        accepted = await self._require_task(task_id)
        log.info("task_accepted", task_id=task_id, provider_id=provider_id)

        provider_user = await self._stores.directory_store.get_user(provider.user_id)
        provider_name = provider_user.display_name if provider_user is not None else "a provider"

        await self._fan_out(
            task_id,
            [accepted.client_id],
            NotificationType.TASK_ACCEPTED,
            "Task Accepted",
            f'Your task "{accepted.title}" has been accepted by {provider_name}',
            {"taskId": task_id, "providerId": provider_id},
        )

        # 当前仍在该分类的其他服务商（不含接单者本人）
        peers = await self._stores.directory_store.get_service_providers_by_category(
            accepted.category_id
        )
        await self._fan_out(
            task_id,
            [p.user_id for p in peers if p.user_id != provider.user_id],
            NotificationType.TASK_ACCEPTED,
            "Task No Longer Available",
            f'The task "{accepted.title}" has been accepted by another provider',
            {"taskId": task_id},
        )
        return accepted

    # ---- 开工 / 完成 / 取消 ----

    async def _accepted_provider(self, task: Task) -> ServiceProvider | None:
        if task.accepted_by_id is None:
            return None
        return await self._stores.directory_store.get_service_provider(task.accepted_by_id)

    async def start_task(self, task_id: str, actor_id: str) -> Task:
        """accepted -> in-progress，仅接单服务商本人可操作"""
        task = await self._require_task(task_id)
        provider = await self._accepted_provider(task)
        if provider is None or provider.user_id != actor_id:
            raise ForbiddenError("Only the accepting provider can start this task")

        async with self._stores.transaction():
            rows = await self._stores.task_store.transition_task_conditional(
                task_id,
                from_statuses=sources_for(TaskStatus.IN_PROGRESS),
                to_status=TaskStatus.IN_PROGRESS,
                updated_at=datetime.now(UTC),
            )
        if rows == 0:
            current = await self._require_task(task_id)
            raise InvalidTransitionError(
                task_id, current.status.value, TaskStatus.IN_PROGRESS.value
            )

        log.info("task_started", task_id=task_id, provider_id=provider.provider_id)
        return await self._require_task(task_id)

    async def complete_task(self, task_id: str, actor_id: str) -> Task:
        """accepted / in-progress -> completed，客户或接单服务商均可操作

        同一写事务内累加服务商 completed_jobs；终态任务抛 InvalidTransitionError。
        """
        task = await self._require_task(task_id)
        provider = await self._accepted_provider(task)
        is_client = actor_id == task.client_id
        is_provider = provider is not None and provider.user_id == actor_id
        if not (is_client or is_provider):
            raise ForbiddenError("You can only update your own tasks")
        if provider is None:
            raise InvalidTransitionError(
                task_id, task.status.value, TaskStatus.COMPLETED.value
            )

        completed = await complete_task_and_credit_provider(
            self._stores.conn,
            self._stores.write_lock,
            self._stores.task_store,
            self._stores.directory_store,
            task_id,
            provider.provider_id,
            datetime.now(UTC),
        )
        if not completed:
            current = await self._require_task(task_id)
            raise InvalidTransitionError(
                task_id, current.status.value, TaskStatus.COMPLETED.value
            )

        done = await self._require_task(task_id)
        log.info("task_completed", task_id=task_id, provider_id=provider.provider_id)

        counterparty = provider.user_id if is_client else done.client_id
        await self._fan_out(
            task_id,
            [counterparty],
            NotificationType.TASK_COMPLETED,
            "Task Completed",
            f'The task "{done.title}" has been marked as completed',
            {"taskId": task_id},
        )
        return done

    async def cancel_task(self, task_id: str, actor_id: str) -> Task:
        """任意非终态 -> cancelled，客户或接单服务商均可操作

        accepted_by_id 保持不变；通知对方（若存在）。
        """
        task = await self._require_task(task_id)
        provider = await self._accepted_provider(task)
        is_client = actor_id == task.client_id
        is_provider = provider is not None and provider.user_id == actor_id
        if not (is_client or is_provider):
            raise ForbiddenError("You can only update your own tasks")

        now = datetime.now(UTC)
        async with self._stores.transaction():
            rows = await self._stores.task_store.transition_task_conditional(
                task_id,
                from_statuses=sources_for(TaskStatus.CANCELLED),
                to_status=TaskStatus.CANCELLED,
                updated_at=now,
                cancelled_at=now,
            )
        if rows == 0:
            current = await self._require_task(task_id)
            raise InvalidTransitionError(
                task_id, current.status.value, TaskStatus.CANCELLED.value
            )

        cancelled = await self._require_task(task_id)
        log.info("task_cancelled", task_id=task_id, actor_id=actor_id)

        # 写入前读到的可能是 open，期间可能已有服务商接单；以写入后的状态为准
        if is_client:
            provider = await self._accepted_provider(cancelled)
            recipients = [provider.user_id] if provider is not None else []
        else:
            recipients = [cancelled.client_id]
        await self._fan_out(
            task_id,
            recipients,
            NotificationType.TASK_CANCELLED,
            "Task Cancelled",
            f'The task "{cancelled.title}" has been cancelled',
            {"taskId": task_id},
        )
        return cancelled

    # ---- 扇出 ----

    async def _fan_out(
        self,
        task_id: str,
        recipient_ids: list[str],
        notification_type: NotificationType,
        title: str,
        message: str,
        data: dict,
    ) -> None:
        """通知扇出：状态写入已提交，扇出失败不影响本次操作结果"""
        try:
            await self._notifications.notify(
                recipient_ids, notification_type, title, message, data
            )
        except Exception as e:
            log.error(
                "notification_fan_out_failed",
                task_id=task_id,
                notification_type=notification_type.value,
                error_type=type(e).__name__,
            )
