"""
LLM 服务封装 - 调用大模型润色书评
"""
import re
from dataclasses import dataclass
from typing import Optional

import openai
from langchain_core.messages import AIMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI

from book_review.core import Settings, get_settings, get_logger
from book_review.services.outcome import AdapterResult, FailureReason

logger = get_logger(__name__)

THINK_BLOCK_PATTERN = re.compile(r"<(think|thinking)>[\s\S]*?</\1>")
STRAY_TAG_PATTERN = re.compile(r"</?(?:think|thinking)>")


# 润色 Prompt
IMPROVE_PROMPT = ChatPromptTemplate.from_messages([
    (
        "system",
        """你是一位经验丰富的书评编辑。请在保留作者原意、观点和语气的前提下润色读者提交的书评。

要求：
1. 修正错别字、语法和不通顺的句子
2. 让结构更清晰，段落之间衔接自然
3. 不要编造书中没有的情节或作者没有表达的观点
4. 使用与原文相同的语言输出
5. 只输出润色后的书评正文，不要有额外说明""",
    ),
    (
        "human",
        """书名：{title}

原始书评：
{original_content}

请输出润色后的书评：""",
    ),
])


@dataclass(frozen=True)
class ImprovedReview:
    """润色结果"""
    content: str
    model: str
    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


def classify_openai_error(exc: Exception) -> FailureReason:
    """把 openai SDK 的异常归类为适配器失败原因"""
    # APITimeoutError 是 APIConnectionError 的子类，必须先判断
    if isinstance(exc, openai.APITimeoutError):
        return FailureReason.TIMEOUT
    if isinstance(exc, openai.APIConnectionError):
        return FailureReason.UNAVAILABLE
    if isinstance(exc, openai.RateLimitError):
        if getattr(exc, "code", None) == "insufficient_quota":
            return FailureReason.INSUFFICIENT_QUOTA
        return FailureReason.RATE_LIMITED
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return FailureReason.UNAUTHORIZED
    if isinstance(exc, openai.APIStatusError) and exc.status_code >= 500:
        return FailureReason.UNAVAILABLE
    return FailureReason.INVALID_RESPONSE


class LLMService:
    """
    LLM 服务封装

    统一管理大模型调用；单次调用、固定超时，不做自动重试
    """

    def __init__(self, settings: Optional[Settings] = None):
        """初始化 LLM 客户端（未配置 API Key 时不创建客户端）"""
        settings = settings or get_settings()
        self.model_name = settings.openai_model
        self.llm: Optional[ChatOpenAI] = None

        if settings.openai_api_key:
            self.llm = ChatOpenAI(
                model=settings.openai_model,
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                temperature=settings.openai_temperature,
                timeout=settings.openai_timeout,
                max_retries=0,
            )
            logger.info(f"LLM 服务初始化完成，使用模型: {settings.openai_model}")
        else:
            logger.warning("未配置 OPENAI_API_KEY，AI 润色将被跳过")

    def improve_review(
        self,
        title: str,
        original_content: str,
    ) -> AdapterResult[ImprovedReview]:
        """
        润色书评

        Args:
            title: 书名/标题
            original_content: 原始书评

        Returns:
            成功时为 ImprovedReview，失败时带失败原因
        """
        if self.llm is None:
            return AdapterResult.failure(
                FailureReason.NOT_CONFIGURED, "OpenAI API Key 未配置"
            )

        logger.info(f"[OPENAI] 请求润色书评: title='{title}'")
        messages = IMPROVE_PROMPT.format_messages(
            title=title,
            original_content=original_content,
        )

        try:
            response = self.llm.invoke(messages)
        except openai.OpenAIError as e:
            reason = classify_openai_error(e)
            logger.warning(f"[OPENAI] 调用失败: reason={reason.value}, error={e}")
            return AdapterResult.failure(reason, str(e))

        return self._parse_response(response)

    def _parse_response(self, response: AIMessage) -> AdapterResult[ImprovedReview]:
        """从模型响应中提取正文和 token 用量"""
        content = self._clean_content(self._message_text(response))
        if not content:
            logger.warning("[OPENAI] 响应中没有正文内容")
            return AdapterResult.failure(FailureReason.INVALID_RESPONSE, "模型返回内容为空")

        metadata = response.response_metadata or {}
        finish_reason = metadata.get("finish_reason")
        if finish_reason and finish_reason != "stop":
            logger.warning(f"[OPENAI] finish_reason={finish_reason}，输出可能被截断")

        prompt_tokens, completion_tokens = self._token_usage(response)
        model = metadata.get("model_name") or self.model_name

        logger.info(
            f"[OPENAI] 润色完成: model={model}, "
            f"prompt_tokens={prompt_tokens}, completion_tokens={completion_tokens}"
        )
        return AdapterResult.success(ImprovedReview(
            content=content,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        ))

    def _message_text(self, response: AIMessage) -> str:
        content = response.content
        if isinstance(content, list):
            # 兼容 content block 形式的响应
            parts = []
            for block in content:
                if isinstance(block, str):
                    parts.append(block)
                elif isinstance(block, dict) and block.get("type") == "text":
                    parts.append(block.get("text", ""))
            content = "".join(parts)
        return content or ""

    def _clean_content(self, text: str) -> str:
        """去掉推理模型输出的思考过程标签"""
        text = THINK_BLOCK_PATTERN.sub("", text)
        text = STRAY_TAG_PATTERN.sub("", text)
        return re.sub(r"\n{3,}", "\n\n", text).strip()

    def _token_usage(self, response: AIMessage) -> tuple[int, int]:
        usage = getattr(response, "usage_metadata", None)
        if usage:
            return int(usage.get("input_tokens", 0)), int(usage.get("output_tokens", 0))

        token_usage = (response.response_metadata or {}).get("token_usage") or {}
        return (
            int(token_usage.get("prompt_tokens", 0) or 0),
            int(token_usage.get("completion_tokens", 0) or 0),
        )


# 全局单例
_llm_service: Optional[LLMService] = None


def get_llm_service() -> LLMService:
    """获取 LLM 服务单例"""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
