"""ServiceRequestService -- 报价/协商记录

与任务接单相互独立：这里只维护客户与服务商之间的协商留档。
"""

from datetime import UTC, datetime

import structlog
from taskmarket.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from taskmarket.core.models import (
    VALID_REQUEST_TRANSITIONS,
    ServiceRequest,
    ServiceRequestStatus,
)
from taskmarket.core.store import StoreGroup
from ulid import ULID

log = structlog.get_logger()


class ServiceRequestService:
    """服务请求业务服务"""

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    async def create_request(
        self,
        client_id: str,
        provider_id: str,
        task_id: str | None = None,
        message: str = "",
    ) -> ServiceRequest:
        provider = await self._stores.directory_store.get_service_provider(provider_id)
        if provider is None:
            raise NotFoundError(
                "Service provider not found",
                code="PROVIDER_NOT_FOUND",
            )
        if task_id is not None:
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise NotFoundError(
                    f"Task with id {task_id} does not exist",
                    code="TASK_NOT_FOUND",
                )

        now = datetime.now(UTC)
        request = ServiceRequest(
            request_id=str(ULID()),
            task_id=task_id,
            provider_id=provider_id,
            client_id=client_id,
            message=message,
            created_at=now,
            updated_at=now,
        )
        async with self._stores.transaction():
            await self._stores.service_request_store.create_request(request)

        log.info(
            "service_request_created",
            request_id=request.request_id,
            provider_id=provider_id,
        )
        return request

    async def list_for_client(self, client_id: str) -> list[ServiceRequest]:
        return await self._stores.service_request_store.list_for_client(client_id)

    async def list_for_provider_user(self, user_id: str) -> list[ServiceRequest]:
        """按当前用户的服务商资料查询收到的请求"""
        provider = await self._stores.directory_store.get_service_provider_by_user_id(user_id)
        if provider is None:
            raise NotFoundError(
                "Service provider profile not found",
                code="PROVIDER_NOT_FOUND",
            )
        return await self._stores.service_request_store.list_for_provider(provider.provider_id)

    async def update_status(
        self,
        request_id: str,
        actor_id: str,
        status: ServiceRequestStatus,
    ) -> ServiceRequest:
        """更新请求状态，仅请求的客户或对应服务商本人可操作

        Raises:
            NotFoundError: 请求不存在
            ForbiddenError: 操作者不是请求的任何一方
            InvalidTransitionError: 当前状态不能流转到目标状态
        """
        store = self._stores.service_request_store
        request = await store.get_request(request_id)
        if request is None:
            raise NotFoundError(
                "Service request not found",
                code="SERVICE_REQUEST_NOT_FOUND",
            )

        provider = await self._stores.directory_store.get_service_provider_by_user_id(actor_id)
        is_provider = provider is not None and provider.provider_id == request.provider_id
        if request.client_id != actor_id and not is_provider:
            raise ForbiddenError("You can only update your own requests")

        sources = {
            src for src, targets in VALID_REQUEST_TRANSITIONS.items() if status in targets
        }
        async with self._stores.transaction():
            rows = await store.update_status_conditional(
                request_id,
                from_statuses=sources,
                to_status=status,
                updated_at=datetime.now(UTC),
            )
        if rows == 0:
            current = await store.get_request(request_id)
            raise InvalidTransitionError(request_id, current.status.value, status.value)

        log.info("service_request_updated", request_id=request_id, status=status.value)
        return await store.get_request(request_id)
