"""用户目录模型 -- User / ServiceCategory / ServiceProvider

这些实体由外部的注册、资料管理子系统维护，
核心只读取它们（completed_jobs 计数除外）。
"""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """用户（客户与服务商共用同一账户）"""

    user_id: str = Field(description="唯一标识，ULID 格式")
    username: str
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    is_service_provider: bool = Field(default=False)
    created_at: datetime

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username


class ServiceCategory(BaseModel):
    """服务分类"""

    category_id: str
    name: str
    description: str = Field(default="")


class ServiceProvider(BaseModel):
    """服务商资料 -- 与 User 一对一，归属单个分类"""

    provider_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str = Field(description="所属用户")
    category_id: str = Field(description="服务分类")
    hourly_rate: float = Field(ge=0, description="时薪")
    bio: str = Field(default="")
    rating: float | None = Field(default=None, description="评分均值（由评价子系统维护）")
    completed_jobs: int = Field(default=0, ge=0, description="已完成任务数")
