"""
外部集成状态模型
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

# 警告信息最大长度
MAX_WARNING_LENGTH = 500


class StepStatus(str, Enum):
    """
    单个集成步骤的结果

    - SUCCESS: 适配器返回了可用数据
    - FAILED: 已调用，但适配器报告错误
    - SKIPPED: 未调用（上游依赖不可用或未配置）
    """
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


class IntegrationStatus(BaseModel):
    """书评创建时三个外部集成步骤的结果汇总"""

    openai_status: StepStatus
    currency_status: StepStatus
    drive_status: StepStatus
    warning_message: Optional[str] = None

    @field_validator("warning_message")
    @classmethod
    def _truncate_warning(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value[:MAX_WARNING_LENGTH]

    @property
    def all_succeeded(self) -> bool:
        return all(
            status == StepStatus.SUCCESS
            for status in (self.openai_status, self.currency_status, self.drive_status)
        )
