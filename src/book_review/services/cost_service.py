"""
Token 费用估算
"""
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from book_review.core import get_logger
from book_review.services.outcome import AdapterResult, FailureReason

logger = get_logger(__name__)

THOUSAND = Decimal(1000)
COST_PLACES = Decimal("0.000001")
DEFAULT_MODEL = "gpt-4o"


@dataclass(frozen=True)
class TokenPrice:
    """每 1K token 的价格（美元）"""
    prompt_per_thousand: Decimal
    completion_per_thousand: Decimal


@dataclass(frozen=True)
class CostEstimate:
    total_tokens: int
    usd_cost: Decimal


MODEL_PRICES: dict[str, TokenPrice] = {
    "gpt-4o": TokenPrice(Decimal("0.01"), Decimal("0.01")),
    "gpt-4o-mini": TokenPrice(Decimal("0.005"), Decimal("0.005")),
}


class TokenCostService:
    """按模型单价估算一次调用的费用"""

    def __init__(self, prices: Optional[dict[str, TokenPrice]] = None):
        self.prices = prices or MODEL_PRICES

    def price_for(self, model: Optional[str]) -> TokenPrice:
        """未知模型按默认模型计价"""
        effective = (model or "").strip() or DEFAULT_MODEL
        if effective in self.prices:
            return self.prices[effective]
        return self.prices.get(DEFAULT_MODEL, MODEL_PRICES[DEFAULT_MODEL])

    def estimate(
        self,
        model: Optional[str],
        prompt_tokens: int,
        completion_tokens: int,
    ) -> AdapterResult[CostEstimate]:
        if prompt_tokens < 0 or completion_tokens < 0:
            return AdapterResult.failure(
                FailureReason.INVALID_RESPONSE,
                f"token 数不能为负数: prompt={prompt_tokens}, completion={completion_tokens}",
            )

        price = self.price_for(model)
        prompt_cost = (price.prompt_per_thousand * prompt_tokens / THOUSAND).quantize(
            COST_PLACES, rounding=ROUND_HALF_UP
        )
        completion_cost = (price.completion_per_thousand * completion_tokens / THOUSAND).quantize(
            COST_PLACES, rounding=ROUND_HALF_UP
        )
        total_cost = (prompt_cost + completion_cost).quantize(COST_PLACES, rounding=ROUND_HALF_UP)
        total_tokens = prompt_tokens + completion_tokens

        logger.debug(
            f"[OPENAI] 费用估算: model={model}, prompt_tokens={prompt_tokens}, "
            f"completion_tokens={completion_tokens}, usd_cost={total_cost}"
        )
        return AdapterResult.success(CostEstimate(total_tokens=total_tokens, usd_cost=total_cost))


# 全局单例
_token_cost_service: Optional[TokenCostService] = None


def get_token_cost_service() -> TokenCostService:
    """获取费用估算服务单例"""
    global _token_cost_service
    if _token_cost_service is None:
        _token_cost_service = TokenCostService()
    return _token_cost_service
