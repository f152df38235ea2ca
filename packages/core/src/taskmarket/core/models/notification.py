"""Notification Domain Model

每个接收者一条独立记录（独立的已读状态）。
推送通道只是低延迟提示，持久化的 Notification 才是事实来源。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import NotificationType


class Notification(BaseModel):
    """Notification 数据模型 -- append-only，仅 read 标记可由接收者修改"""

    notification_id: str = Field(description="唯一标识，ULID 格式")
    user_id: str = Field(description="接收者 user_id")
    type: NotificationType = Field(description="通知类型")
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict, description="结构化 payload，如 taskId")
    read: bool = Field(default=False)
    created_at: datetime


class PushPayload(BaseModel):
    """推送线上格式：{type, title, message, data}"""

    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
