"""
GitHub event -> review 输入（ChangeDetails + diff）。

支持的触发方式是封闭集合（`TriggerKind`），其余事件一律报错：
- pull_request：opened 审整个 PR；synchronize 只审 before...after 之间的新 commit
- workflow_dispatch：手动触发，必须提供 `inputs.pull_number`
- issue_comment：PR 上内容恰好为 `/review` 的评论
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pr_reviewer.github.client import GitHubClient
from pr_reviewer.github.schemas import GitHubIssueCommentEvent
from pr_reviewer.github.schemas import GitHubPullRequestEvent
from pr_reviewer.github.schemas import GitHubWorkflowDispatchEvent
from pr_reviewer.review.models import ChangeDetails

logger = logging.getLogger(__name__)

REVIEW_TRIGGER_TOKEN = "/review"


class TriggerKind(str, Enum):
    PULL_REQUEST = "pull_request"
    WORKFLOW_DISPATCH = "workflow_dispatch"
    ISSUE_COMMENT = "issue_comment"


class UnsupportedEventError(ValueError):
    pass


class MissingPullNumberError(ValueError):
    pass


def resolve_trigger(event_name: str) -> TriggerKind:
    try:
        return TriggerKind(event_name)
    except ValueError as exc:
        raise UnsupportedEventError(f"Event not supported: {event_name!r}") from exc


async def resolve_change_details(
    github_client: GitHubClient,
    trigger: TriggerKind,
    payload: Mapping[str, Any],
) -> ChangeDetails | None:
    """
    解析触发事件对应的 PR，并拉取标题/描述。

    - 返回 None：事件不需要 review（例如普通评论、labeled 等 action），调用方安静结束，不发任何 API 请求
    - 抛错：手动触发缺少 PR 号
    """
    if trigger is TriggerKind.PULL_REQUEST:
        logger.info("Handling pull request event")
        pr_event = GitHubPullRequestEvent.model_validate(payload)
        if pr_event.action not in ("opened", "synchronize"):
            logger.info(f"Ignoring pull_request action: {pr_event.action}")
            return None
        owner, repo, pull_number = pr_event.repository.owner.login, pr_event.repository.name, pr_event.number
    elif trigger is TriggerKind.WORKFLOW_DISPATCH:
        logger.info("Handling workflow dispatch event")
        dispatch_event = GitHubWorkflowDispatchEvent.model_validate(payload)
        raw_number = dispatch_event.inputs.get("pull_number")
        if raw_number is None or raw_number == "":
            raise MissingPullNumberError("Pull request number must be provided for manual triggers.")
        owner, repo = dispatch_event.repository.owner.login, dispatch_event.repository.name
        pull_number = _parse_pull_number(raw=raw_number)
    elif trigger is TriggerKind.ISSUE_COMMENT:
        logger.info("Handling issue comment event")
        comment_event = GitHubIssueCommentEvent.model_validate(payload)
        if comment_event.action != "created":
            logger.info(f"Ignoring issue_comment action: {comment_event.action}")
            return None
        if comment_event.issue.pull_request is None:
            logger.info("Comment is not on a pull request.")
            return None
        if comment_event.comment.body.strip() != REVIEW_TRIGGER_TOKEN:
            logger.info("Comment does not contain the trigger keyword.")
            return None
        owner, repo = comment_event.repository.owner.login, comment_event.repository.name
        pull_number = comment_event.issue.number
    else:
        raise UnsupportedEventError(f"Event not supported: {trigger!r}")

    pr = await github_client.get_pull_request(owner=owner, repo=repo, pull_number=pull_number)
    return ChangeDetails(
        owner=owner,
        repo=repo,
        pull_number=pull_number,
        title=pr.title or "",
        description=pr.body or "",
    )


async def fetch_review_diff(
    github_client: GitHubClient,
    trigger: TriggerKind,
    payload: Mapping[str, Any],
    details: ChangeDetails,
) -> str:
    """按事件类型选择 diff 范围（action 已在 `resolve_change_details` 里过滤）。"""
    if trigger is TriggerKind.PULL_REQUEST:
        pr_event = GitHubPullRequestEvent.model_validate(payload)
        if pr_event.action == "synchronize":
            if not pr_event.before or not pr_event.after:
                raise ValueError("synchronize event payload missing before/after commit sha")
            return await github_client.compare_commits_diff(
                owner=details.owner,
                repo=details.repo,
                base=pr_event.before,
                head=pr_event.after,
            )

    return await github_client.get_pull_request_diff(
        owner=details.owner,
        repo=details.repo,
        pull_number=details.pull_number,
    )


def _parse_pull_number(raw: str | int | bool) -> int:
    # workflow_dispatch 的 input 一律是字符串；bool 要先排除，int(True) == 1
    if isinstance(raw, bool):
        raise MissingPullNumberError(f"Invalid pull request number input: {raw!r}")
    try:
        return int(raw)
    except ValueError as exc:
        raise MissingPullNumberError(f"Invalid pull request number input: {raw!r}") from exc
