"""
hunk 级 Review：一次 LLM 调用 + 回复解析。

失败策略（和整个 pipeline 的约定）：
- LLM 调用失败 / 回复不是合法的 `{"reviews": [...]}` -> 记录日志，返回 None
- `{"reviews": []}` 是正常结果（没有需要指出的问题），返回空列表
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import httpx
from openai import OpenAIError
from pydantic import ValidationError

from pr_reviewer.llm.client import ChatCompletionClient
from pr_reviewer.llm.client import ChatMessage
from pr_reviewer.review.models import Finding
from pr_reviewer.review.models import ReviewReply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseSuccess:
    findings: list[Finding]


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ReviewParseResult = ParseSuccess | ParseFailure


def parse_review_reply(content: str) -> ReviewParseResult:
    """
    把模型回复解析为 findings。

    回复是无类型 JSON，边界处必须先校验形状：
    `reviews` 缺失、不是列表、元素缺字段都算 `ParseFailure`。
    """
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        return ParseFailure(reason=f"invalid JSON ({exc.msg})")
    if not isinstance(parsed, dict):
        return ParseFailure(reason=f"expected a JSON object, got {type(parsed).__name__}")
    try:
        reply = ReviewReply.model_validate(parsed)
    except ValidationError as exc:
        return ParseFailure(reason=f"reply does not match schema: {exc}")
    return ParseSuccess(findings=reply.reviews)


async def request_review(llm_client: ChatCompletionClient, prompt: str) -> list[Finding] | None:
    """
    对一个 hunk 的 prompt 发起 review。

    - 输入：完整 prompt（作为唯一一条 system message）
    - 输出：findings；失败返回 None（不抛错，调用方跳过这个 hunk）
    """
    messages = [ChatMessage(role="system", content=prompt)]
    try:
        content = await llm_client.complete_text(messages=messages)
    except (OpenAIError, httpx.HTTPError) as exc:
        logger.error(f"Review request failed: {exc}")
        return None

    raw = (content or "").strip() or "{}"
    result = parse_review_reply(content=raw)
    if isinstance(result, ParseFailure):
        logger.error(f"Unusable review reply: {result.reason}. Raw content: {raw}")
        return None
    return result.findings
