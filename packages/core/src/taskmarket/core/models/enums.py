"""枚举定义 -- Task 状态机、通知类型、服务请求状态

包含 TaskStatus 状态机、NotificationType、ServiceRequestStatus 枚举，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机"""

    OPEN = "open"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in-progress"

    # 终态
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 合法状态流转（单向，终态不可重新打开）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.OPEN: {TaskStatus.ACCEPTED, TaskStatus.CANCELLED},
    TaskStatus.ACCEPTED: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
}

# 必须持有 accepted_by_id 的状态
CLAIMED_STATES: set[TaskStatus] = {
    TaskStatus.ACCEPTED,
    TaskStatus.IN_PROGRESS,
    TaskStatus.COMPLETED,
}


class NotificationType(StrEnum):
    """通知类型"""

    NEW_TASK = "new_task"
    TASK_ACCEPTED = "task_accepted"
    TASK_COMPLETED = "task_completed"
    TASK_CANCELLED = "task_cancelled"


class ServiceRequestStatus(StrEnum):
    """服务请求（报价/协商记录）状态"""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


VALID_REQUEST_TRANSITIONS: dict[ServiceRequestStatus, set[ServiceRequestStatus]] = {
    ServiceRequestStatus.PENDING: {
        ServiceRequestStatus.ACCEPTED,
        ServiceRequestStatus.REJECTED,
    },
    ServiceRequestStatus.ACCEPTED: {ServiceRequestStatus.IN_PROGRESS},
    ServiceRequestStatus.IN_PROGRESS: {ServiceRequestStatus.COMPLETED},
    ServiceRequestStatus.REJECTED: set(),
    ServiceRequestStatus.COMPLETED: set(),
}


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证 Task 状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed


def sources_for(to_status: TaskStatus) -> set[TaskStatus]:
    """反查可以流转到 to_status 的所有来源状态（用于条件更新的 WHERE 子句）"""
    return {src for src, targets in VALID_TRANSITIONS.items() if to_status in targets}
