"""
GitHub Action 入口。

这里做三件事：
- 加载配置（严格校验环境变量）+ 读取触发事件（GITHUB_EVENT_NAME / GITHUB_EVENT_PATH）
- 组装外部依赖（HTTP Client / LLM Client / GitHub client）
- 跑一次 review；任何未处理的错误都转成非 0 退出码

启动：
  python -m pr_reviewer.main
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import anyio
import httpx

from pr_reviewer.config import load_config_from_env
from pr_reviewer.llm.client import OpenAICompatLLMClient
from pr_reviewer.review.models import CommentRecord
from pr_reviewer.review.orchestrator import build_github_event_handler
from pr_reviewer.review.orchestrator import build_review_orchestrator

logger = logging.getLogger(__name__)


def load_event_payload(event_path: str) -> dict[str, Any]:
    if not event_path:
        raise ValueError("Missing required env vars: GITHUB_EVENT_PATH")
    payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected event payload shape in {event_path}")
    return payload


async def run_action(environ: Mapping[str, str]) -> list[CommentRecord]:
    """跑一次 action，返回发布出去的评论（没有评论 / 事件被忽略时为空列表）。"""
    config = load_config_from_env(environ=environ)
    event_name = environ.get("GITHUB_EVENT_NAME", "")
    if not event_name:
        raise ValueError("Missing required env vars: GITHUB_EVENT_NAME")
    payload = load_event_payload(event_path=environ.get("GITHUB_EVENT_PATH", ""))

    # 同一个 httpx.AsyncClient 给 GitHub API 与 LLM 调用复用
    async with httpx.AsyncClient(timeout=httpx.Timeout(60.0)) as http_client:
        llm_client = OpenAICompatLLMClient(
            api_key=config.openai_api_key,
            base_url=str(config.openai_base_url),
            http_client=http_client,
            model=config.openai_api_model,
        )
        orchestrator = build_review_orchestrator(
            llm_client=llm_client,
            exclude_patterns=config.exclude_patterns,
            concurrency=config.review_concurrency,
        )
        handler = build_github_event_handler(config=config, http_client=http_client, orchestrator=orchestrator)
        return await handler(event_name, payload)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        anyio.run(run_action, dict(os.environ))
    except Exception:
        logger.exception("Review run failed")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
