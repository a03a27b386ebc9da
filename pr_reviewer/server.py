"""
FastAPI webhook 服务入口（action 之外的另一种部署方式）。

这里做三件事：
- 加载配置（严格校验环境变量，server 模式额外要求 GITHUB_WEBHOOK_SECRET）
- 组装外部依赖（HTTP Client / LLM Client / GitHub event handler）
- 装配路由（health + github webhook）

注意：
- 业务流程不写在这里（由 `review/orchestrator.py` 负责）
- `httpx.AsyncClient` 会被复用（避免每个请求新建连接）

启动：
  uvicorn pr_reviewer.server:build_app --factory
"""

from __future__ import annotations

import os

import httpx
from fastapi import FastAPI

from pr_reviewer.config import load_config_from_env
from pr_reviewer.github.webhook import build_github_webhook_router
from pr_reviewer.llm.client import OpenAICompatLLMClient
from pr_reviewer.review.orchestrator import build_github_event_handler
from pr_reviewer.review.orchestrator import build_review_orchestrator


def build_app() -> FastAPI:
    """创建并返回 FastAPI app（便于测试/复用）。"""

    # 1) 配置：缺失会直接抛错，启动失败（这是期望行为）
    config = load_config_from_env(os.environ)
    if not config.github_webhook_secret:
        raise ValueError("Missing required env vars: GITHUB_WEBHOOK_SECRET")

    # 2) 可复用的 HTTP client：供 GitHub API 与 LLM 调用使用
    http_client = httpx.AsyncClient(timeout=httpx.Timeout(60.0))

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

    app = FastAPI(title="AI PR Reviewer", version="0.1.0")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """健康检查：用于 k8s / LB 探活。"""
        return {"status": "ok"}

    app.include_router(build_github_webhook_router(webhook_secret=config.github_webhook_secret, handler=handler))
    return app
