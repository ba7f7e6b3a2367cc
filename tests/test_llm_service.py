"""
LLM 润色服务测试
"""
from unittest.mock import Mock

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage

from book_review.core import Settings
from book_review.services import FailureReason, LLMService
from book_review.services.llm_service import IMPROVE_PROMPT, classify_openai_error


OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _request() -> httpx.Request:
    return httpx.Request("POST", OPENAI_URL)


def _status_error(cls, status_code: int, body=None):
    response = httpx.Response(status_code, request=_request())
    return cls("error", response=response, body=body)


@pytest.fixture
def llm_service():
    """配置了 Key 的服务，底层模型替换为 Mock"""
    service = LLMService(Settings(openai_api_key="sk-test", openai_model="gpt-4o-mini"))
    service.llm = Mock()
    return service


class TestImprovePrompt:
    def test_prompt_contains_title_and_content(self):
        messages = IMPROVE_PROMPT.format_messages(title="My Book", original_content="It was good.")

        assert len(messages) == 2
        assert "My Book" in messages[1].content
        assert "It was good." in messages[1].content


class TestClientConfiguration:
    """客户端配置：固定超时，不自动重试"""

    def test_timeout_and_no_retries(self):
        service = LLMService(Settings(openai_api_key="sk-test", openai_timeout=5))

        assert service.llm.max_retries == 0
        assert service.llm.request_timeout == 5

    def test_configured_model(self):
        service = LLMService(Settings(openai_api_key="sk-test", openai_model="gpt-4o"))

        assert service.llm.model_name == "gpt-4o"


class TestImproveReview:
    """improve_review 测试"""

    def test_not_configured_without_api_key(self):
        service = LLMService(Settings(openai_api_key=""))

        result = service.improve_review("My Book", "It was good.")

        assert service.llm is None
        assert not result.ok
        assert result.reason == FailureReason.NOT_CONFIGURED

    def test_success_reads_usage_metadata(self, llm_service):
        llm_service.llm.invoke.return_value = AIMessage(
            content="It was truly excellent.",
            response_metadata={"finish_reason": "stop", "model_name": "gpt-4o-mini-2024-07-18"},
            usage_metadata={"input_tokens": 8, "output_tokens": 4, "total_tokens": 12},
        )

        result = llm_service.improve_review("My Book", "It was good.")

        assert result.ok
        improved = result.value
        assert improved.content == "It was truly excellent."
        assert improved.model == "gpt-4o-mini-2024-07-18"
        assert improved.prompt_tokens == 8
        assert improved.completion_tokens == 4
        assert improved.total_tokens == 12

    def test_falls_back_to_token_usage_and_configured_model(self, llm_service):
        llm_service.llm.invoke.return_value = AIMessage(
            content="Better.",
            response_metadata={"token_usage": {"prompt_tokens": 5, "completion_tokens": 2}},
        )

        result = llm_service.improve_review("My Book", "It was good.")

        assert result.ok
        assert result.value.model == "gpt-4o-mini"
        assert result.value.total_tokens == 7

    def test_think_tags_are_removed(self, llm_service):
        llm_service.llm.invoke.return_value = AIMessage(
            content="<think>推理过程</think>\n\n润色后的书评",
        )

        result = llm_service.improve_review("My Book", "It was good.")

        assert result.value.content == "润色后的书评"

    def test_empty_content_is_invalid_response(self, llm_service):
        llm_service.llm.invoke.return_value = AIMessage(content="   ")

        result = llm_service.improve_review("My Book", "It was good.")

        assert result.reason == FailureReason.INVALID_RESPONSE

    def test_sdk_error_becomes_failure(self, llm_service):
        llm_service.llm.invoke.side_effect = openai.APITimeoutError(request=_request())

        result = llm_service.improve_review("My Book", "It was good.")

        assert not result.ok
        assert result.reason == FailureReason.TIMEOUT


class TestClassifyOpenAIError:
    """异常归类测试"""

    def test_timeout(self):
        assert classify_openai_error(openai.APITimeoutError(request=_request())) == FailureReason.TIMEOUT

    def test_connection_error(self):
        error = openai.APIConnectionError(request=_request())
        assert classify_openai_error(error) == FailureReason.UNAVAILABLE

    def test_rate_limited(self):
        error = _status_error(openai.RateLimitError, 429, body={"code": "rate_limit_exceeded"})
        assert classify_openai_error(error) == FailureReason.RATE_LIMITED

    def test_insufficient_quota(self):
        error = _status_error(openai.RateLimitError, 429, body={"code": "insufficient_quota"})
        assert classify_openai_error(error) == FailureReason.INSUFFICIENT_QUOTA

    def test_unauthorized(self):
        error = _status_error(openai.AuthenticationError, 401)
        assert classify_openai_error(error) == FailureReason.UNAUTHORIZED

    def test_server_error(self):
        error = _status_error(openai.InternalServerError, 503)
        assert classify_openai_error(error) == FailureReason.UNAVAILABLE

    def test_bad_request_is_invalid_response(self):
        error = _status_error(openai.BadRequestError, 400)
        assert classify_openai_error(error) == FailureReason.INVALID_RESPONSE
