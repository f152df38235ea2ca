"""接单路由

POST /api/tasks/{task_id}/accept: 当前用户以其服务商身份接单。
- 200: 接单成功
- 400: 已被其他服务商接单（TASK_ALREADY_ACCEPTED）
- 403: 非服务商，或分类不符（CATEGORY_MISMATCH）
- 404: 任务不存在
- 409: 任务已不在 open 状态
"""

from fastapi import APIRouter, Depends
from taskmarket.core.exceptions import ForbiddenError
from taskmarket.core.models import Task

from ..deps import get_current_user_id, get_push_hub, get_store_group
from ..services.task_service import TaskService

router = APIRouter()


@router.post("/api/tasks/{task_id}/accept", response_model=Task)
async def accept_task(
    task_id: str,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
    push_hub=Depends(get_push_hub),
):
    provider = await store_group.directory_store.get_service_provider_by_user_id(user_id)
    if provider is None:
        raise ForbiddenError("Only service providers can accept tasks")

    service = TaskService(store_group, push_hub)
    return await service.accept_task(task_id, provider.provider_id)
