"""
业务异常体系
服务层只抛出这里定义的异常，由 main.py 中注册的异常处理器统一转换为
{"message": ..., **details} 形式的 JSON 响应。
"""

from typing import Any, Dict, Optional

from training_portal.config.settings import settings


class TrainingPortalError(Exception):
    """所有业务异常的基类"""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.details}


class ValidationError(TrainingPortalError):
    """请求参数缺失或格式错误"""
    status_code = 400
    default_message = "Invalid request"


class InvalidStateError(TrainingPortalError):
    """实体当前所处的生命周期状态不允许该操作"""
    status_code = 400
    default_message = "Operation not allowed in the current state"


class AuthenticationError(TrainingPortalError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(TrainingPortalError):
    status_code = 403
    default_message = "Not allowed"


class NotFoundError(TrainingPortalError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(TrainingPortalError):
    """唯一性冲突或状态冲突"""
    status_code = 409
    default_message = "Conflict"


class InternalError(TrainingPortalError):
    status_code = 500
    default_message = "Internal server error"

    @classmethod
    def from_exception(cls, message: str, exc: BaseException) -> "InternalError":
        """包装未预期的异常，非生产环境下在响应中附带原始错误信息"""
        if settings.is_production:
            return cls(message)
        return cls(message, error=str(exc))
