"""
GitHub API 客户端（外部系统连接器）。

约定：
- 这里只做 HTTP 调用 + 错误处理 + schema 校验
- 出错直接抛错（不要吞），由 action 入口统一转成非 0 退出码
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from pr_reviewer.github.schemas import GitHubPullRequest
from pr_reviewer.github.schemas import GitHubReviewComment

logger = logging.getLogger(__name__)

DEFAULT_GITHUB_API_URL = "https://api.github.com"


class GitHubClient:
    """最小 GitHub API client（PR 详情 / PR diff / compare diff / 创建 review）。"""

    def __init__(self, api_base_url: str, token: str, http_client: httpx.AsyncClient) -> None:
        self._api_base_url = api_base_url.rstrip("/")
        self._token = token
        self._http_client = http_client

    def _headers(self, accept: str = "application/vnd.github+json") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": accept,
            "X-GitHub-Api-Version": "2022-11-28",
        }

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code >= 400:
            raise RuntimeError(f"GitHub API error {response.status_code}: {response.text}")

    async def get_pull_request(self, owner: str, repo: str, pull_number: int) -> GitHubPullRequest:
        url = f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}"
        response = await self._http_client.get(url, headers=self._headers())
        self._raise_for_status(response)
        return GitHubPullRequest.model_validate(response.json())

    async def get_pull_request_diff(self, owner: str, repo: str, pull_number: int) -> str:
        """拉取整个 PR 的 unified diff（同一个 endpoint，换 diff media type）。"""
        url = f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}"
        response = await self._http_client.get(url, headers=self._headers(accept="application/vnd.github.v3.diff"))
        self._raise_for_status(response)
        logger.info(f"Fetched PR diff: {owner}/{repo}#{pull_number} ({len(response.text)} chars)")
        return response.text

    async def compare_commits_diff(self, owner: str, repo: str, base: str, head: str) -> str:
        """
        拉取两个 commit 之间的 diff。

        用于 synchronize 事件：只 review 新推送的 commit，而不是整个 PR。
        """
        url = f"{self._api_base_url}/repos/{owner}/{repo}/compare/{base}...{head}"
        response = await self._http_client.get(url, headers=self._headers(accept="application/vnd.github.v3.diff"))
        self._raise_for_status(response)
        logger.info(f"Fetched compare diff: {owner}/{repo} {base[:7]}...{head[:7]} ({len(response.text)} chars)")
        return response.text

    async def create_pull_request_review(
        self,
        owner: str,
        repo: str,
        pull_number: int,
        comments: Sequence[GitHubReviewComment],
    ) -> None:
        """
        创建一条带行内评论的 PR review（一次性批量提交）。

        说明：event=COMMENT 表示“评论型 review”（不 approve / request changes）。
        """
        url = f"{self._api_base_url}/repos/{owner}/{repo}/pulls/{pull_number}/reviews"
        payload = {"event": "COMMENT", "comments": [c.model_dump() for c in comments]}
        response = await self._http_client.post(url, headers=self._headers(), json=payload)
        self._raise_for_status(response)
        logger.info(f"Posted review with {len(comments)} comment(s) to {owner}/{repo}#{pull_number}")
