"""
LLM Client（基于 OpenAI SDK，兼容任意 OpenAI-compatible endpoint）。

目标：
- **尽量薄**：只做协议适配与错误日志，JSON 解析交给 `review/reviewer.py`
- **固定解码参数**：review 需要稳定、可复现的输出
- **可替换**：上游只依赖 `ChatCompletionClient` 协议，测试里可以换成 fake
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"

# 已知支持 response_format=json_object 的模型
JSON_MODE_MODELS: frozenset[str] = frozenset(
    {
        "gpt-4-1106-preview",
        "gpt-4-turbo",
        "gpt-4-turbo-preview",
        "gpt-4o",
        "gpt-4o-mini",
        "gpt-3.5-turbo-1106",
    }
)


class ChatMessage(BaseModel):
    """OpenAI chat message 的最小结构。"""

    role: str
    content: str


class ChatCompletionClient(Protocol):
    """review pipeline 需要的最小 LLM 接口。"""

    async def complete_text(self, messages: Sequence[ChatMessage]) -> str | None: ...


def supports_json_mode(model: str) -> bool:
    return model in JSON_MODE_MODELS


def _normalize_base_url(base_url: str) -> str:
    normalized = base_url.rstrip("/")
    if normalized.endswith("/v1"):
        return normalized
    return f"{normalized}/v1"


class OpenAICompatLLMClient:
    """
    chat completions 的薄封装。

    解码参数固定（低 temperature、有上限的输出长度、不做 penalty 调整），
    模型支持时开启 JSON mode。
    """

    temperature = 0.2
    max_tokens = 700
    top_p = 1
    frequency_penalty = 0
    presence_penalty = 0

    def __init__(self, api_key: str, base_url: str, http_client: httpx.AsyncClient, model: str) -> None:
        """
        - api_key: LLM API key
        - base_url: OpenAI-compatible base URL
        - http_client: 复用 httpx.AsyncClient 连接池
        - model: 模型名（例如 `gpt-4o`）
        """
        self._base_url = _normalize_base_url(base_url=base_url)
        self._model = model
        self._client = AsyncOpenAI(api_key=api_key, base_url=self._base_url, http_client=http_client)

    @property
    def model(self) -> str:
        return self._model

    def _request_options(self) -> dict[str, object]:
        options: dict[str, object] = {
            "model": self._model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
        }
        if supports_json_mode(self._model):
            options["response_format"] = {"type": "json_object"}
        return options

    async def complete_text(self, messages: Sequence[ChatMessage]) -> str | None:
        """
        调用 completion 并返回第一个 choice 的文本（可能为 None）。

        注意：
        - 出错直接抛异常（OpenAIError / httpx.HTTPError），由调用方决定是否吞掉
        """
        try:
            logger.info(f"LLM request: model={self._model}, messages={len(messages)} msg(s)")
            response = await self._client.chat.completions.create(
                messages=[m.model_dump() for m in messages],
                **self._request_options(),
            )
        except OpenAIError as exc:
            logger.error(f"LLM API error: {exc}")
            raise
        except httpx.HTTPError as exc:
            logger.error(f"LLM HTTP error: {exc}")
            raise

        if not response.choices:
            logger.warning("LLM returned no choices")
            return None
        content = response.choices[0].message.content
        if content is None:
            logger.warning("LLM returned None content")
            return None

        logger.info(f"LLM response: {len(content)} chars")
        return str(content)
