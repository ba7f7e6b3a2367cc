"""
Token 费用估算测试
"""
from decimal import Decimal

import pytest

from book_review.services import FailureReason, TokenCostService
from book_review.services.cost_service import MODEL_PRICES, TokenPrice


class TestTokenCostService:
    """estimate 测试"""

    def setup_method(self):
        self.service = TokenCostService()

    @pytest.mark.parametrize(
        "model, prompt_tokens, completion_tokens, expected",
        [
            ("gpt-4o", 1000, 1000, Decimal("0.020000")),
            ("gpt-4o-mini", 1000, 1000, Decimal("0.010000")),
            ("gpt-4o-mini", 8, 4, Decimal("0.000060")),
            ("gpt-4o", 0, 0, Decimal("0.000000")),
        ],
    )
    def test_estimate(self, model, prompt_tokens, completion_tokens, expected):
        result = self.service.estimate(model, prompt_tokens, completion_tokens)

        assert result.ok
        assert result.value.usd_cost == expected
        assert result.value.total_tokens == prompt_tokens + completion_tokens

    def test_unknown_model_uses_default_price(self):
        known = self.service.estimate("gpt-4o", 500, 500)
        unknown = self.service.estimate("some-other-model", 500, 500)
        missing = self.service.estimate(None, 500, 500)

        assert unknown.value.usd_cost == known.value.usd_cost
        assert missing.value.usd_cost == known.value.usd_cost

    def test_cost_is_rounded_half_up_to_six_places(self):
        service = TokenCostService({"gpt-4o": TokenPrice(Decimal("0.0015"), Decimal("0"))})

        result = service.estimate("gpt-4o", 1, 0)

        # 0.0000015 → 0.000002
        assert result.value.usd_cost == Decimal("0.000002")

    def test_negative_tokens_rejected(self):
        result = self.service.estimate("gpt-4o", -1, 10)

        assert not result.ok
        assert result.reason == FailureReason.INVALID_RESPONSE

    def test_price_table(self):
        assert self.service.price_for("gpt-4o-mini") == MODEL_PRICES["gpt-4o-mini"]
        assert self.service.price_for("  ") == MODEL_PRICES["gpt-4o"]
