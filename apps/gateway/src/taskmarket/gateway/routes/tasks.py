"""任务路由

POST /api/tasks: 客户发布任务（201），通知该分类下的服务商。
GET /api/tasks: 任务列表，支持 status / category_id 筛选。
GET /api/tasks/client: 当前用户发布的任务。
GET /api/tasks/{task_id}: 任务详情。
PUT /api/tasks/{task_id}: 状态更新（in-progress / completed / cancelled）。
"""

from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse
from taskmarket.core.exceptions import NotFoundError
from taskmarket.core.models import Task, TaskStatus

from ..deps import get_current_user_id, get_push_hub, get_store_group
from ..services.task_service import TaskService

router = APIRouter()


class TaskCreateRequest(BaseModel):
    """任务发布请求体"""

    category_id: str = Field(description="服务分类 ID")
    title: str
    description: str
    location: str
    budget: float | None = Field(default=None, description="预算（可选，非负）")


class TaskUpdateRequest(BaseModel):
    """任务状态更新请求体"""

    status: Literal["in-progress", "completed", "cancelled"]


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[Task]


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: TaskCreateRequest,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
    push_hub=Depends(get_push_hub),
):
    """发布任务"""
    service = TaskService(store_group, push_hub)
    task = await service.create_task(
        client_id=user_id,
        category_id=body.category_id,
        title=body.title,
        description=body.description,
        location=body.location,
        budget=body.budget,
    )
    return JSONResponse(status_code=201, content=task.model_dump(mode="json"))


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    category_id: str | None = Query(default=None, description="按分类筛选"),
    store_group=Depends(get_store_group),
):
    """查询任务列表，按 created_at 倒序"""
    service = TaskService(store_group)
    tasks = await service.list_tasks(
        status=status.value if status else None,
        category_id=category_id,
    )
    return TaskListResponse(tasks=tasks)


@router.get("/api/tasks/client", response_model=TaskListResponse)
async def list_client_tasks(
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    """当前用户作为客户发布的任务"""
    service = TaskService(store_group)
    return TaskListResponse(tasks=await service.list_tasks(client_id=user_id))


@router.get("/api/tasks/{task_id}", response_model=Task)
async def get_task_detail(
    task_id: str,
    store_group=Depends(get_store_group),
):
    service = TaskService(store_group)
    task = await service.get_task(task_id)
    if task is None:
        raise NotFoundError(
            f"Task with id {task_id} does not exist",
            code="TASK_NOT_FOUND",
        )
    return task


@router.put("/api/tasks/{task_id}", response_model=Task)
async def update_task_status(
    task_id: str,
    body: TaskUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
    push_hub=Depends(get_push_hub),
):
    """状态更新

    - in-progress: 仅接单服务商
    - completed / cancelled: 客户或接单服务商
    - 终态任务返回 409
    """
    service = TaskService(store_group, push_hub)
    if body.status == TaskStatus.IN_PROGRESS:
        return await service.start_task(task_id, user_id)
    if body.status == TaskStatus.COMPLETED:
        return await service.complete_task(task_id, user_id)
    return await service.cancel_task(task_id, user_id)
