"""TaskMarket Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .directory import ServiceCategory, ServiceProvider, User
from .enums import (
    CLAIMED_STATES,
    TERMINAL_STATES,
    VALID_REQUEST_TRANSITIONS,
    VALID_TRANSITIONS,
    NotificationType,
    ServiceRequestStatus,
    TaskStatus,
    sources_for,
    validate_transition,
)
from .notification import Notification, PushPayload
from .service_request import ServiceRequest
from .task import Task

__all__ = [
    # 枚举
    "TaskStatus",
    "NotificationType",
    "ServiceRequestStatus",
    # 状态机
    "VALID_TRANSITIONS",
    "VALID_REQUEST_TRANSITIONS",
    "TERMINAL_STATES",
    "CLAIMED_STATES",
    "validate_transition",
    "sources_for",
    # Task
    "Task",
    # 目录
    "User",
    "ServiceCategory",
    "ServiceProvider",
    # Notification
    "Notification",
    "PushPayload",
    # ServiceRequest
    "ServiceRequest",
]
