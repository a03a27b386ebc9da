from __future__ import annotations

import json
from collections.abc import Callable, Sequence

import httpx
import pytest

from pr_reviewer.github.client import GitHubClient
from pr_reviewer.llm.client import ChatMessage

GitHubRoute = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class FakeLLMClient:
    """按 prompt 内容决定回复的 fake；responder 抛出的异常会原样传给调用方。"""

    def __init__(self, responder: Callable[[str], str | None]) -> None:
        self._responder = responder
        self.prompts: list[str] = []
        self.roles: list[list[str]] = []

    async def complete_text(self, messages: Sequence[ChatMessage]) -> str | None:
        self.roles.append([m.role for m in messages])
        prompt = "\n".join(m.content for m in messages)
        self.prompts.append(prompt)
        return self._responder(prompt)


def reviews_json(*items: tuple[str, str]) -> str:
    return json.dumps({"reviews": [{"lineNumber": line, "reviewComment": body} for line, body in items]})


class RecordingGitHub:
    """httpx.MockTransport 背后的假 GitHub：记录所有请求，按 (method, path) 返回预设响应。"""

    def __init__(self, routes: dict[tuple[str, str], GitHubRoute]) -> None:
        self._routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return route(request)

    def paths(self, method: str) -> list[str]:
        return [r.url.path for r in self.requests if r.method == method]


def build_github_client(fake: RecordingGitHub) -> GitHubClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return GitHubClient(api_base_url="https://api.github.test", token="t", http_client=http_client)


SINGLE_ADD_DIFF = "\n".join(
    [
        "diff --git a/src/a.ts b/src/a.ts",
        "index 1111111..2222222 100644",
        "--- a/src/a.ts",
        "+++ b/src/a.ts",
        "@@ -4,0 +5,1 @@",
        "+items.push(x);",
        "",
    ]
)

TWO_FILES_WITH_DELETION_DIFF = "\n".join(
    [
        "diff --git a/src/a.py b/src/a.py",
        "index 1111111..2222222 100644",
        "--- a/src/a.py",
        "+++ b/src/a.py",
        "@@ -1,2 +1,3 @@",
        " import os",
        "+HUNK_ONE = 1",
        " import sys",
        "@@ -20,3 +21,2 @@ def main():",
        "     run()",
        "-    HUNK_TWO = 2",
        "     return 0",
        "diff --git a/old.py b/old.py",
        "deleted file mode 100644",
        "index 3333333..0000000",
        "--- a/old.py",
        "+++ /dev/null",
        "@@ -1,2 +0,0 @@",
        "-x = 1",
        "-y = 2",
        "diff --git a/src/b.py b/src/b.py",
        "index 4444444..5555555 100644",
        "--- a/src/b.py",
        "+++ b/src/b.py",
        "@@ -10,2 +10,2 @@",
        "-FILE_B = 1",
        "+FILE_B = 2",
        " pass",
        "",
    ]
)
