"""Task Domain Model

客户发布的工作单元。状态流转由 TaskService 驱动，
accepted_by_id 一旦写入不可改写（不支持重新接单）。
"""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from .enums import CLAIMED_STATES, TaskStatus


class Task(BaseModel):
    """Task 数据模型

    不变式：
    - status 为 accepted / in-progress / completed 时 accepted_by_id 必须非空
    - status 为 open 时 accepted_by_id 必须为空
    - cancelled 任务保留取消前的 accepted_by_id（可能为空）
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    client_id: str = Field(description="发布任务的客户 user_id")
    category_id: str = Field(description="服务分类 ID")
    title: str = Field(description="任务标题")
    description: str = Field(description="任务描述")
    location: str = Field(description="服务地点")
    budget: float | None = Field(default=None, ge=0, description="预算（可选）")
    status: TaskStatus = Field(default=TaskStatus.OPEN, description="当前状态")
    accepted_by_id: str | None = Field(default=None, description="接单服务商 provider_id")
    accepted_at: datetime | None = Field(default=None, description="接单时间")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    completed_at: datetime | None = Field(default=None, description="完成时间")
    cancelled_at: datetime | None = Field(default=None, description="取消时间")

    @model_validator(mode="after")
    def _check_acceptance_invariant(self) -> "Task":
        """accepted / in-progress / completed 必须有 accepted_by_id，open 必须没有

        accepted_by_id 一经写入不再改变：接单后取消的任务保留原接单者，
        因此 cancelled 状态两种情况都合法。
        """
        if self.status in CLAIMED_STATES and self.accepted_by_id is None:
            raise ValueError(f"status {self.status} requires accepted_by_id")
        if self.status == TaskStatus.OPEN and self.accepted_by_id is not None:
            raise ValueError("open task cannot have accepted_by_id")
        return self
