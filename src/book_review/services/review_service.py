"""
书评服务 - 书评创建流程（润色 → 费用/汇率 → Drive 归档）与删除

流程固定顺序执行，任一外部集成失败都不会中断创建，只记录在集成状态中。
只有参数校验失败和持久化失败会向调用方抛出异常。
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from book_review.core import get_logger
from book_review.models import IntegrationStatus, Review, StepStatus
from book_review.services.cost_service import TokenCostService, get_token_cost_service
from book_review.services.currency_service import CurrencyService, get_currency_service
from book_review.services.drive_service import GoogleDriveService, get_drive_service
from book_review.services.llm_service import LLMService, get_llm_service
from book_review.services.outcome import AdapterResult, FailureReason
from book_review.services.review_store import ReviewStore, get_review_store

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 5000
# 这些字符会导致 Drive 文件名不可用
FORBIDDEN_TITLE_CHARS = re.compile(r'[\\/:*?"<>|#%]')

STEP_OPENAI = "AI 润色"
STEP_CURRENCY = "费用估算/汇率换算"
STEP_DRIVE = "Google Drive 归档"

REASON_MESSAGES = {
    FailureReason.TIMEOUT: "请求超时",
    FailureReason.UNAVAILABLE: "服务暂不可用",
    FailureReason.RATE_LIMITED: "请求过于频繁，请降低调用频率",
    FailureReason.INSUFFICIENT_QUOTA: "额度不足，请检查账户余额",
    FailureReason.UNAUTHORIZED: "凭据无效，请检查配置",
    FailureReason.INVALID_RESPONSE: "响应无法解析",
}


class ReviewValidationError(ValueError):
    """请求参数不合法"""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.field_name = field_name


class ReviewNotFoundError(LookupError):
    """书评不存在"""


class ReviewPersistenceError(RuntimeError):
    """书评保存失败"""


@dataclass
class ReviewCreation:
    """创建结果：已保存的书评 + 集成状态"""
    review: Review
    integration_status: IntegrationStatus
    message: str


@dataclass
class DeleteReviewResult:
    deleted: bool
    drive_deleted: bool
    warnings: list[str] = field(default_factory=list)


def step_status(result: AdapterResult) -> StepStatus:
    """未配置视为未调用（SKIPPED），其余失败为 FAILED"""
    if result.ok:
        return StepStatus.SUCCESS
    if result.reason == FailureReason.NOT_CONFIGURED:
        return StepStatus.SKIPPED
    return StepStatus.FAILED


def step_warning(step: str, status: StepStatus, result: Optional[AdapterResult]) -> Optional[str]:
    """为非 SUCCESS 的步骤生成一条警告"""
    if status == StepStatus.SUCCESS:
        return None
    if status == StepStatus.SKIPPED:
        if result is not None and result.reason == FailureReason.NOT_CONFIGURED:
            return f"{step}：未配置，已跳过。"
        return f"{step}：AI 润色未完成，已跳过。"
    reason = result.reason if result is not None else FailureReason.UNAVAILABLE
    return f"{step}：调用失败（{REASON_MESSAGES.get(reason, reason.value)}）。"


def build_markdown(title: str, improved_content: str) -> str:
    return f"# {title}\n\n{improved_content}\n"


class ReviewService:
    """书评服务"""

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        cost_service: Optional[TokenCostService] = None,
        currency_service: Optional[CurrencyService] = None,
        drive_service: Optional[GoogleDriveService] = None,
        store: Optional[ReviewStore] = None,
    ):
        self.llm_service = llm_service or get_llm_service()
        self.cost_service = cost_service or get_token_cost_service()
        self.currency_service = currency_service or get_currency_service()
        self.drive_service = drive_service or get_drive_service()
        self.store = store or get_review_store()

    def validate(self, title: Optional[str], original_content: Optional[str]) -> tuple[str, str]:
        """校验并去除首尾空白，返回 (title, original_content)"""
        title = (title or "").strip()
        original_content = (original_content or "").strip()

        if not title:
            raise ReviewValidationError("请输入标题", "title")
        if len(title) > TITLE_MAX_LENGTH:
            raise ReviewValidationError(f"标题不能超过 {TITLE_MAX_LENGTH} 个字符", "title")
        if FORBIDDEN_TITLE_CHARS.search(title):
            raise ReviewValidationError('标题不能包含 \\ / : * ? " < > | # % 等字符', "title")
        if not original_content:
            raise ReviewValidationError("请输入书评内容", "original_content")
        if len(original_content) > CONTENT_MAX_LENGTH:
            raise ReviewValidationError(
                f"书评内容不能超过 {CONTENT_MAX_LENGTH} 个字符", "original_content"
            )
        return title, original_content

    def create_review(self, title: str, original_content: str) -> ReviewCreation:
        """
        创建书评

        Args:
            title: 标题
            original_content: 原始书评

        Returns:
            ReviewCreation（已保存的书评、集成状态、提示信息）

        Raises:
            ReviewValidationError: 参数不合法（不会调用任何外部服务）
            ReviewPersistenceError: 保存失败
        """
        title, original_content = self.validate(title, original_content)
        logger.info(f"开始创建书评: title='{title}'")

        review = Review(title=title, original_content=original_content)
        warnings: list[str] = []

        # 1. AI 润色
        improved = self._run_step(STEP_OPENAI, self.llm_service.improve_review, title, original_content)
        openai_status = step_status(improved)
        if improved.ok:
            review.improved_content = improved.value.content
            review.model = improved.value.model
            review.token_count = improved.value.total_tokens
        warnings.append(step_warning(STEP_OPENAI, openai_status, improved))

        # 2. 费用估算 + 汇率换算（依赖 token 数）
        currency_result: Optional[AdapterResult] = None
        if review.token_count is not None:
            currency_result = self._run_step(
                STEP_CURRENCY,
                self.cost_service.estimate,
                improved.value.model,
                improved.value.prompt_tokens,
                improved.value.completion_tokens,
            )
            if currency_result.ok:
                usd_cost = currency_result.value.usd_cost
                currency_result = self._run_step(STEP_CURRENCY, self.currency_service.convert, usd_cost)
                if currency_result.ok:
                    review.usd_cost = usd_cost
                    review.krw_cost = currency_result.value
            currency_status = step_status(currency_result)
        else:
            currency_status = StepStatus.SKIPPED
        warnings.append(step_warning(STEP_CURRENCY, currency_status, currency_result))

        # 3. Google Drive 归档（依赖润色内容）
        drive_result: Optional[AdapterResult] = None
        if review.improved_content is not None:
            drive_result = self._run_step(
                STEP_DRIVE,
                self.drive_service.upload_markdown,
                title,
                build_markdown(title, review.improved_content),
            )
            if drive_result.ok:
                review.google_file_id = drive_result.value
            drive_status = step_status(drive_result)
        else:
            drive_status = StepStatus.SKIPPED
        warnings.append(step_warning(STEP_DRIVE, drive_status, drive_result))

        integration_status = IntegrationStatus(
            openai_status=openai_status,
            currency_status=currency_status,
            drive_status=drive_status,
            warning_message="\n".join(w for w in warnings if w) or None,
        )
        review.apply_integration_status(integration_status)

        # 4. 保存（无论集成结果如何）
        try:
            saved = self.store.save(review)
        except SQLAlchemyError as e:
            logger.error(f"书评保存失败，回滚 Drive 文件: file_id={review.google_file_id}", exc_info=True)
            self._rollback_drive_file(review.google_file_id)
            raise ReviewPersistenceError("书评保存失败") from e

        logger.info(
            f"书评已保存: id={saved.id}, openai={openai_status.value}, "
            f"currency={currency_status.value}, drive={drive_status.value}"
        )
        message = "书评已保存"
        if integration_status.warning_message:
            message = "书评已保存，但部分外部集成未完成"
        return ReviewCreation(review=saved, integration_status=integration_status, message=message)

    def delete_review(self, review_id: str) -> DeleteReviewResult:
        """
        删除书评，同时尝试删除 Drive 文件

        Drive 文件删除失败只作为警告返回，不影响书评删除
        """
        logger.info(f"删除书评: id={review_id}")
        review = self.store.find_by_id(review_id)
        if not review:
            raise ReviewNotFoundError(f"书评不存在: {review_id}")

        warnings: list[str] = []
        drive_deleted = False
        if review.google_file_id:
            result = self._run_step(STEP_DRIVE, self.drive_service.delete_file, review.google_file_id)
            if result.ok:
                drive_deleted = True
            else:
                warnings.append(f"Google Drive 文件未能删除（{review.google_file_id}）")

        if not self.store.delete_by_id(review_id):
            # 查询和删除之间已被其他请求删除
            raise ReviewNotFoundError(f"书评不存在: {review_id}")
        logger.info(f"书评已删除: id={review_id}, drive_deleted={drive_deleted}")
        return DeleteReviewResult(deleted=True, drive_deleted=drive_deleted, warnings=warnings)

    def get_review(self, review_id: str) -> Optional[Review]:
        """获取书评"""
        return self.store.find_by_id(review_id)

    def list_reviews(self) -> list[Review]:
        """获取书评列表（新的在前）"""
        return self.store.find_all()

    def _run_step(self, step: str, call: Callable[..., AdapterResult], *args) -> AdapterResult:
        """调用适配器；适配器意外抛出的异常也转成失败结果"""
        try:
            result = call(*args)
        except Exception as e:
            logger.error(f"[{step}] 适配器出现未预期异常: {e}", exc_info=True)
            return AdapterResult.failure(FailureReason.UNAVAILABLE, str(e))

        if not result.ok:
            logger.warning(f"[{step}] 未完成: reason={result.reason.value}, detail={result.detail}")
        return result

    def _rollback_drive_file(self, file_id: Optional[str]) -> None:
        if not file_id:
            return
        result = self._run_step(STEP_DRIVE, self.drive_service.delete_file, file_id)
        if not result.ok:
            logger.warning(f"Drive 文件回滚失败: file_id={file_id}")


# 全局单例
_review_service: Optional[ReviewService] = None


def get_review_service() -> ReviewService:
    """获取书评服务单例"""
    global _review_service
    if _review_service is None:
        _review_service = ReviewService()
    return _review_service
