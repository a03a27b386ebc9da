from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Mapping
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.testclient import TestClient

from pr_reviewer.github.webhook import build_github_webhook_router
from pr_reviewer.github.webhook import verify_github_signature
from pr_reviewer.review.models import CommentRecord

SECRET = "s3cret"


def _sign(body: bytes) -> str:
    return "sha256=" + hmac.new(SECRET.encode("utf-8"), body, hashlib.sha256).hexdigest()


def _app(received: list[tuple[str, Mapping[str, Any]]]) -> TestClient:
    async def handler(event_name: str, payload: Mapping[str, Any]) -> list[CommentRecord]:
        received.append((event_name, payload))
        return [CommentRecord(body="b", path="a.py", line=1)]

    app = FastAPI()
    app.include_router(build_github_webhook_router(webhook_secret=SECRET, handler=handler))
    return TestClient(app)


def test_verify_github_signature_ok() -> None:
    body = b'{"a": 1}'
    verify_github_signature(body=body, signature_header=_sign(body), secret=SECRET)


def test_verify_github_signature_rejects_mismatch() -> None:
    with pytest.raises(HTTPException):
        verify_github_signature(body=b"{}", signature_header="sha256=deadbeef", secret=SECRET)


def test_webhook_dispatches_signed_comment_event() -> None:
    received: list[tuple[str, Mapping[str, Any]]] = []
    body = json.dumps({"action": "created"}).encode("utf-8")
    response = _app(received).post(
        "/github/webhook",
        content=body,
        headers={"X-GitHub-Event": "issue_comment", "X-Hub-Signature-256": _sign(body)},
    )
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "comments": 1}
    assert received == [("issue_comment", {"action": "created"})]


def test_webhook_ignores_other_events() -> None:
    received: list[tuple[str, Mapping[str, Any]]] = []
    response = _app(received).post(
        "/github/webhook",
        content=b"{}",
        headers={"X-GitHub-Event": "push", "X-Hub-Signature-256": _sign(b"{}")},
    )
    assert response.json() == {"status": "ignored"}
    assert received == []


def test_webhook_rejects_bad_signature() -> None:
    received: list[tuple[str, Mapping[str, Any]]] = []
    response = _app(received).post(
        "/github/webhook",
        content=b"{}",
        headers={"X-GitHub-Event": "pull_request", "X-Hub-Signature-256": "sha256=bad"},
    )
    assert response.status_code == 401
    assert received == []
