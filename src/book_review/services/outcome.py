"""
外部服务适配器的统一返回类型

适配器对预期内的失败不抛异常，而是返回带失败原因的结果
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureReason(str, Enum):
    """适配器失败原因（封闭集合）"""
    NOT_CONFIGURED = "NOT_CONFIGURED"
    TIMEOUT = "TIMEOUT"
    UNAVAILABLE = "UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    INSUFFICIENT_QUOTA = "INSUFFICIENT_QUOTA"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_RESPONSE = "INVALID_RESPONSE"


@dataclass(frozen=True)
class AdapterResult(Generic[T]):
    """成功时携带 value，失败时携带 reason 和 detail"""

    value: Optional[T] = None
    reason: Optional[FailureReason] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "AdapterResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: FailureReason, detail: str = "") -> "AdapterResult[T]":
        return cls(reason=reason, detail=detail)
