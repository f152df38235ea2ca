"""ServiceRequest Domain Model

服务商与客户之间的报价/协商记录，可选关联某个 Task。
与 Task 接单互相独立：接单是对 open 任务的排他占有，
ServiceRequest 只是协商过程的留档。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ServiceRequestStatus


class ServiceRequest(BaseModel):
    """ServiceRequest 数据模型"""

    request_id: str = Field(description="唯一标识，ULID 格式")
    task_id: str | None = Field(default=None, description="关联的 Task（可选）")
    provider_id: str = Field(description="服务商 provider_id")
    client_id: str = Field(description="客户 user_id")
    status: ServiceRequestStatus = Field(default=ServiceRequestStatus.PENDING)
    message: str = Field(default="")
    created_at: datetime
    updated_at: datetime
