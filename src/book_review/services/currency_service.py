"""
汇率换算服务 - 基于 exchangerate-api
"""
import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

import httpx

from book_review.core import Settings, get_settings, get_logger
from book_review.services.outcome import AdapterResult, FailureReason

logger = get_logger(__name__)

AMOUNT_PLACES = Decimal("0.01")

# exchangerate-api 的 error-type 映射
API_ERROR_REASONS = {
    "invalid-key": FailureReason.UNAUTHORIZED,
    "inactive-account": FailureReason.UNAUTHORIZED,
    "quota-reached": FailureReason.INSUFFICIENT_QUOTA,
}


def _status_reason(status_code: int) -> FailureReason:
    if status_code == 429:
        return FailureReason.RATE_LIMITED
    if status_code in (401, 403):
        return FailureReason.UNAUTHORIZED
    if status_code >= 500:
        return FailureReason.UNAVAILABLE
    return FailureReason.INVALID_RESPONSE


class CurrencyService:
    """
    汇率换算服务

    把源币种金额换算为目标币种，汇率在进程内缓存一段时间
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        settings = settings or get_settings()
        self.api_key = settings.exchange_rate_api_key
        self.api_url = settings.exchange_rate_api_url
        self.source_currency = settings.source_currency.upper()
        self.target_currency = settings.target_currency.upper()
        self.timeout = settings.exchange_rate_timeout
        self.cache_ttl = settings.exchange_rate_cache_ttl
        self.transport = transport
        # (汇率, 获取时间)
        self._cached_rate: Optional[tuple[Decimal, float]] = None

    def convert(self, amount: Decimal) -> AdapterResult[Decimal]:
        """
        把金额从源币种换算为目标币种

        Args:
            amount: 源币种金额

        Returns:
            成功时为目标币种金额（保留两位小数）
        """
        logger.info(
            f"[CURRENCY] 换算 {self.source_currency} -> {self.target_currency}: amount={amount}"
        )
        if amount == 0:
            return AdapterResult.success(Decimal("0").quantize(AMOUNT_PLACES))

        rate_result = self.get_rate()
        if not rate_result.ok:
            return AdapterResult.failure(rate_result.reason, rate_result.detail)

        converted = (Decimal(amount) * rate_result.value).quantize(
            AMOUNT_PLACES, rounding=ROUND_HALF_UP
        )
        logger.debug(f"[CURRENCY] 换算结果: {amount} x {rate_result.value} = {converted}")
        return AdapterResult.success(converted)

    def get_rate(self) -> AdapterResult[Decimal]:
        """获取汇率（优先使用缓存）"""
        if self._cached_rate is not None:
            rate, fetched_at = self._cached_rate
            if time.monotonic() - fetched_at < self.cache_ttl:
                return AdapterResult.success(rate)

        result = self._fetch_rate()
        if result.ok and self.cache_ttl > 0:
            self._cached_rate = (result.value, time.monotonic())
        return result

    def _fetch_rate(self) -> AdapterResult[Decimal]:
        if not self.api_key:
            return AdapterResult.failure(FailureReason.NOT_CONFIGURED, "汇率 API Key 未配置")

        url = self.api_url.format(api_key=self.api_key, base=self.source_currency)
        logger.debug(f"[CURRENCY] 请求汇率: {self._mask(url)}")

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(url)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            logger.warning(f"[CURRENCY] 请求超时: {self._mask(str(e))}")
            return AdapterResult.failure(FailureReason.TIMEOUT, "汇率接口请求超时")
        except httpx.HTTPStatusError as e:
            reason = _status_reason(e.response.status_code)
            logger.warning(
                f"[CURRENCY] 汇率接口返回错误: status={e.response.status_code}, reason={reason.value}"
            )
            return AdapterResult.failure(reason, f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            logger.warning(f"[CURRENCY] 汇率接口不可用: {self._mask(str(e))}")
            return AdapterResult.failure(FailureReason.UNAVAILABLE, "汇率接口不可用")
        except ValueError as e:
            logger.warning(f"[CURRENCY] 响应不是合法 JSON: {e}")
            return AdapterResult.failure(FailureReason.INVALID_RESPONSE, "汇率响应解析失败")

        return self._parse_rate(data)

    def _parse_rate(self, data: object) -> AdapterResult[Decimal]:
        if not isinstance(data, dict):
            return AdapterResult.failure(FailureReason.INVALID_RESPONSE, "汇率响应格式错误")

        if data.get("result") == "error":
            error_type = data.get("error-type", "unknown")
            reason = API_ERROR_REASONS.get(error_type, FailureReason.INVALID_RESPONSE)
            logger.warning(f"[CURRENCY] 汇率接口报告错误: error-type={error_type}")
            return AdapterResult.failure(reason, error_type)

        rates = data.get("conversion_rates")
        if not isinstance(rates, dict) or self.target_currency not in rates:
            return AdapterResult.failure(
                FailureReason.INVALID_RESPONSE, f"响应中没有 {self.target_currency} 汇率"
            )

        try:
            rate = Decimal(str(rates[self.target_currency]))
        except InvalidOperation:
            return AdapterResult.failure(FailureReason.INVALID_RESPONSE, "汇率不是数字")

        # NaN/Infinity 在比较或换算时会抛 InvalidOperation
        if not rate.is_finite() or rate <= 0:
            return AdapterResult.failure(FailureReason.INVALID_RESPONSE, f"汇率无效: {rate}")

        logger.info(f"[CURRENCY] 已获取汇率 {self.source_currency}->{self.target_currency}: {rate}")
        return AdapterResult.success(rate)

    def _mask(self, text: str) -> str:
        """日志中隐藏 API Key"""
        if self.api_key:
            return text.replace(self.api_key, "****")
        return text


# 全局单例
_currency_service: Optional[CurrencyService] = None


def get_currency_service() -> CurrencyService:
    """获取汇率服务单例"""
    global _currency_service
    if _currency_service is None:
        _currency_service = CurrencyService()
    return _currency_service
