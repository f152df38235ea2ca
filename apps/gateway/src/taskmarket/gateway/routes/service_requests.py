"""服务请求路由

POST /api/service-requests: 客户向服务商发起请求（201）。
GET /api/service-requests/client: 当前用户发起的请求。
GET /api/service-requests/provider: 当前用户（服务商）收到的请求。
PUT /api/service-requests/{request_id}: 状态更新，仅请求双方可操作。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse
from taskmarket.core.models import ServiceRequest, ServiceRequestStatus

from ..deps import get_current_user_id, get_store_group
from ..services.service_request_service import ServiceRequestService

router = APIRouter()


class ServiceRequestCreate(BaseModel):
    provider_id: str
    task_id: str | None = None
    message: str = Field(default="", max_length=2000)


class ServiceRequestUpdate(BaseModel):
    status: ServiceRequestStatus


class ServiceRequestListResponse(BaseModel):
    requests: list[ServiceRequest]


@router.post("/api/service-requests", status_code=201)
async def create_service_request(
    body: ServiceRequestCreate,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = ServiceRequestService(store_group)
    request = await service.create_request(
        client_id=user_id,
        provider_id=body.provider_id,
        task_id=body.task_id,
        message=body.message,
    )
    return JSONResponse(status_code=201, content=request.model_dump(mode="json"))


@router.get("/api/service-requests/client", response_model=ServiceRequestListResponse)
async def list_client_requests(
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = ServiceRequestService(store_group)
    return ServiceRequestListResponse(requests=await service.list_for_client(user_id))


@router.get("/api/service-requests/provider", response_model=ServiceRequestListResponse)
async def list_provider_requests(
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = ServiceRequestService(store_group)
    return ServiceRequestListResponse(
        requests=await service.list_for_provider_user(user_id)
    )


@router.put("/api/service-requests/{request_id}", response_model=ServiceRequest)
async def update_service_request(
    request_id: str,
    body: ServiceRequestUpdate,
    user_id: str = Depends(get_current_user_id),
    store_group=Depends(get_store_group),
):
    service = ServiceRequestService(store_group)
    return await service.update_status(request_id, user_id, body.status)
