"""
数据模型模块
"""
from .integration_status import IntegrationStatus, StepStatus
from .review import Review

__all__ = [
    "IntegrationStatus",
    "StepStatus",
    "Review",
]
