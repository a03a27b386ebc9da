"""
GitHub Webhook 接入层（server 模式，与 action 入口共用同一套 review 流程）。

职责：
- 校验 `X-Hub-Signature-256`（HMAC SHA256）
- 校验 event 类型（只处理 pull_request / issue_comment）
- 解析 payload，调用业务 handler
"""

from __future__ import annotations

import hashlib
import hmac
import json

from fastapi import APIRouter
from fastapi import Header
from fastapi import HTTPException
from fastapi import Request

from pr_reviewer.github.events import TriggerKind
from pr_reviewer.review.orchestrator import GitHubEventHandler

WEBHOOK_EVENTS = (TriggerKind.PULL_REQUEST.value, TriggerKind.ISSUE_COMMENT.value)


def verify_github_signature(body: bytes, signature_header: str, secret: str) -> None:
    if not signature_header.startswith("sha256="):
        raise HTTPException(status_code=401, detail="Invalid signature header")
    expected = "sha256=" + hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, signature_header):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")


def build_github_webhook_router(webhook_secret: str, handler: GitHubEventHandler) -> APIRouter:
    router = APIRouter()

    @router.post("/github/webhook")
    async def github_webhook(
        request: Request,
        x_github_event: str = Header(alias="X-GitHub-Event"),
        x_hub_signature_256: str = Header(alias="X-Hub-Signature-256"),
    ) -> dict[str, str | int]:
        if x_github_event not in WEBHOOK_EVENTS:
            return {"status": "ignored"}

        body = await request.body()
        verify_github_signature(body=body, signature_header=x_hub_signature_256, secret=webhook_secret)
        try:
            payload = json.loads(body.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise HTTPException(status_code=400, detail="Invalid JSON payload") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

        comments = await handler(x_github_event, payload)
        return {"status": "ok", "comments": len(comments)}

    return router
