"""
GitHub event payload / API response schemas（Pydantic）。

说明：
- 字段只覆盖当前流程需要的子集（三种触发事件 + PR 详情）
- 未声明的字段默认忽略，payload 里多余的内容不会导致校验失败
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class GitHubOwner(BaseModel):
    login: str


class GitHubRepository(BaseModel):
    name: str
    owner: GitHubOwner


class GitHubPullRequest(BaseModel):
    """GET /repos/{owner}/{repo}/pulls/{pull_number} 的最小结构。"""

    number: int
    title: str | None = None
    body: str | None = None


class GitHubPullRequestEvent(BaseModel):
    """
    `pull_request` event。

    action: opened/synchronize/...；synchronize 时 before/after 是推送前后的 commit sha
    """

    action: str
    number: int
    repository: GitHubRepository
    before: str | None = None
    after: str | None = None


class GitHubWorkflowDispatchEvent(BaseModel):
    """`workflow_dispatch` event：PR 号来自手动输入 `inputs.pull_number`。"""

    repository: GitHubRepository
    inputs: dict[str, str | int | bool | None] = Field(default_factory=dict)


class GitHubIssuePullRequestLink(BaseModel):
    url: str | None = None


class GitHubIssue(BaseModel):
    number: int
    # 只有 PR 上的评论才会带这个字段
    pull_request: GitHubIssuePullRequestLink | None = None


class GitHubComment(BaseModel):
    body: str = ""


class GitHubIssueCommentEvent(BaseModel):
    action: str
    issue: GitHubIssue
    comment: GitHubComment
    repository: GitHubRepository


class GitHubReviewComment(BaseModel):
    """POST /pulls/{pull_number}/reviews 里的单条行内评论。"""

    path: str
    line: int
    body: str
