"""业务异常体系

服务层抛出类型化异常，由 gateway 的异常处理器映射为 HTTP 状态码。
"""


class TaskMarketError(Exception):
    """基础业务异常"""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500

    def __init__(self, message: str, code: str | None = None) -> None:
        """
        Args:
            message: 面向用户的错误描述
            code: 覆盖默认错误码（如 TASK_NOT_FOUND）
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(TaskMarketError):
    """任务、服务商或用户不存在"""

    code = "NOT_FOUND"
    status_code = 404


class UnauthorizedError(TaskMarketError):
    """缺少已认证的操作者"""

    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Not authenticated", code: str | None = None) -> None:
        super().__init__(message, code)


class ForbiddenError(TaskMarketError):
    """操作者对该任务无权限"""

    code = "FORBIDDEN"
    status_code = 403


class CategoryMismatchError(ForbiddenError):
    """服务商只能接本分类的任务"""

    code = "CATEGORY_MISMATCH"

    def __init__(self, provider_category_id: str, task_category_id: str) -> None:
        super().__init__("You can only accept tasks in your service category")
        self.provider_category_id = provider_category_id
        self.task_category_id = task_category_id


class AlreadyAcceptedError(TaskMarketError):
    """接单竞争失败 -- 并发下的预期结果，不是服务端故障

    客户端刷新任务列表即可恢复。
    """

    code = "TASK_ALREADY_ACCEPTED"
    status_code = 400

    def __init__(self, task_id: str) -> None:
        super().__init__("Task has already been accepted by another provider")
        self.task_id = task_id


class InvalidTransitionError(TaskMarketError):
    """从终态或不匹配的状态发起流转"""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, entity_id: str, from_status: str, to_status: str) -> None:
        super().__init__(f"Cannot transition from {from_status} to {to_status}")
        self.entity_id = entity_id
        self.from_status = from_status
        self.to_status = to_status


class TaskValidationError(TaskMarketError):
    """创建请求字段非法"""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
