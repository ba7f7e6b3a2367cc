"""
书评数据模型
"""
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from sqlmodel import SQLModel, Field

from book_review.models.integration_status import IntegrationStatus, StepStatus

DISPLAY_TIMEZONE = ZoneInfo("Asia/Seoul")


def _new_review_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Review(SQLModel, table=True):
    """
    书评模型

    标题、原文、创建时间在创建时确定；其余字段只有对应的集成步骤成功时才有值
    """
    __tablename__ = "reviews"

    # 主键
    id: str = Field(default_factory=_new_review_id, primary_key=True, max_length=32)

    # 用户提交内容
    title: str = Field(max_length=100, description="书名/标题")
    original_content: str = Field(description="原始书评")

    # AI 润色结果
    improved_content: Optional[str] = Field(default=None, description="润色后的书评")
    model: Optional[str] = Field(default=None, description="实际使用的模型")
    token_count: Optional[int] = Field(default=None, description="消耗的 token 总数")

    # 费用
    usd_cost: Optional[Decimal] = Field(
        default=None, max_digits=18, decimal_places=6, description="费用（源币种）"
    )
    krw_cost: Optional[Decimal] = Field(
        default=None, max_digits=18, decimal_places=2, description="费用（目标币种）"
    )

    # Google Drive 归档
    google_file_id: Optional[str] = Field(default=None, description="Drive 文件ID")

    # 集成状态
    openai_status: StepStatus = Field(default=StepStatus.SKIPPED, description="AI 润色状态")
    currency_status: StepStatus = Field(default=StepStatus.SKIPPED, description="汇率换算状态")
    drive_status: StepStatus = Field(default=StepStatus.SKIPPED, description="Drive 归档状态")
    warning_message: Optional[str] = Field(default=None, max_length=500, description="集成警告")

    # 时间戳
    created_at: datetime = Field(default_factory=_utc_now, description="创建时间（UTC）")

    @property
    def integration_status(self) -> IntegrationStatus:
        return IntegrationStatus(
            openai_status=self.openai_status,
            currency_status=self.currency_status,
            drive_status=self.drive_status,
            warning_message=self.warning_message,
        )

    def apply_integration_status(self, status: IntegrationStatus) -> None:
        """写入集成状态（只在创建时调用一次）"""
        self.openai_status = status.openai_status
        self.currency_status = status.currency_status
        self.drive_status = status.drive_status
        self.warning_message = status.warning_message

    @property
    def formatted_usd_cost(self) -> str:
        if self.usd_cost is None:
            return "-"
        return f"${self.usd_cost:,.6f}"

    @property
    def formatted_krw_cost(self) -> str:
        if self.krw_cost is None:
            return "-"
        rounded = Decimal(self.krw_cost).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return f"{int(rounded):,}원"

    @property
    def formatted_created_at(self) -> str:
        if self.created_at is None:
            return "-"
        created_at = self.created_at
        if created_at.tzinfo is None:
            # 不带时区的值按 UTC 处理（部分数据库驱动读回时会丢掉时区）
            created_at = created_at.replace(tzinfo=timezone.utc)
        return created_at.astimezone(DISPLAY_TIMEZONE).strftime("%Y-%m-%d %H:%M")
