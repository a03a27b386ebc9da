"""
Review Orchestrator（核心流程编排）。

关键思想：
- **流程由工程代码控制**：event -> ChangeDetails -> diff -> parse -> filter -> 逐 hunk review -> 批量发布
- **LLM 只负责“生成结构化输出”**：每个 hunk 单次调用，不 loop

失败隔离：
- 单个 hunk 的 LLM 调用/解析失败只会让这个 hunk 没有评论，不影响其他 hunk
- 其余任何失败（事件不支持、diff 拉取/解析失败、发布失败）直接抛出，终止整次运行
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import anyio
import httpx

from pr_reviewer.config import AppConfig
from pr_reviewer.github.client import GitHubClient
from pr_reviewer.github.events import fetch_review_diff
from pr_reviewer.github.events import resolve_change_details
from pr_reviewer.github.events import resolve_trigger
from pr_reviewer.github.schemas import GitHubReviewComment
from pr_reviewer.llm.client import ChatCompletionClient
from pr_reviewer.review.comments import map_findings_to_comments
from pr_reviewer.review.diff_parser import parse_diff
from pr_reviewer.review.models import ChangeDetails
from pr_reviewer.review.models import CommentRecord
from pr_reviewer.review.models import DiffFile
from pr_reviewer.review.models import DiffHunk
from pr_reviewer.review.path_filter import filter_excluded_files
from pr_reviewer.review.prompt import build_review_prompt
from pr_reviewer.review.reviewer import request_review

logger = logging.getLogger(__name__)

GitHubEventHandler = Callable[[str, Mapping[str, Any]], Awaitable[list[CommentRecord]]]


@dataclass(frozen=True)
class ReviewOrchestrator:
    """Orchestrator 运行时依赖集合。"""

    llm_client: ChatCompletionClient
    exclude_patterns: tuple[str, ...] = ()
    concurrency: int = 1


def build_review_orchestrator(
    llm_client: ChatCompletionClient,
    exclude_patterns: Sequence[str] = (),
    concurrency: int = 1,
) -> ReviewOrchestrator:
    if concurrency <= 0:
        raise ValueError("concurrency must be > 0")
    return ReviewOrchestrator(
        llm_client=llm_client,
        exclude_patterns=tuple(exclude_patterns),
        concurrency=concurrency,
    )


async def analyze_files(
    llm_client: ChatCompletionClient,
    files: Sequence[DiffFile],
    details: ChangeDetails,
    concurrency: int = 1,
) -> list[CommentRecord]:
    """
    对每个文件的每个 hunk 跑一次 review，汇总全部评论。

    - 被删除的文件直接跳过
    - 同时在飞的 LLM 调用数受 `concurrency` 限制（默认 1，即严格串行）
    - 结果按 hunk 预留槽位回填，最终顺序与 diff 顺序一致，和完成顺序无关
    """
    if concurrency <= 0:
        raise ValueError("concurrency must be > 0")

    jobs: list[tuple[DiffFile, DiffHunk]] = [
        (file, hunk) for file in files if not file.is_deleted for hunk in file.hunks
    ]
    logger.info(f"Analyzing {len(files)} file(s), {len(jobs)} hunk(s), concurrency={concurrency}")

    slots: list[list[CommentRecord]] = [[] for _ in jobs]
    limiter = anyio.CapacityLimiter(concurrency)

    async def review_hunk(index: int, file: DiffFile, hunk: DiffHunk) -> None:
        async with limiter:
            prompt = build_review_prompt(file=file, hunk=hunk, details=details)
            findings = await request_review(llm_client=llm_client, prompt=prompt)
        if findings is None:
            logger.warning(f"Skipping hunk {hunk.header!r} of {file.target_path}: review failed")
            return
        slots[index] = map_findings_to_comments(file=file, findings=findings)

    async with anyio.create_task_group() as tg:
        for index, (file, hunk) in enumerate(jobs):
            tg.start_soon(review_hunk, index, file, hunk)

    return [comment for slot in slots for comment in slot]


async def run_review(
    orchestrator: ReviewOrchestrator,
    github_client: GitHubClient,
    details: ChangeDetails,
    diff: str,
) -> list[CommentRecord]:
    """
    跑一次完整 review，有评论时一次性发布，返回全部评论。

    没有任何评论时不会创建 review。
    """
    files = parse_diff(diff=diff)
    included = filter_excluded_files(files=files, patterns=orchestrator.exclude_patterns)
    logger.info(f"Parsed {len(files)} file(s) from diff, {len(included)} left after exclude patterns")

    comments = await analyze_files(
        llm_client=orchestrator.llm_client,
        files=included,
        details=details,
        concurrency=orchestrator.concurrency,
    )
    logger.info(f"Review produced {len(comments)} comment(s)")
    if not comments:
        return comments

    await github_client.create_pull_request_review(
        owner=details.owner,
        repo=details.repo,
        pull_number=details.pull_number,
        comments=[GitHubReviewComment(path=c.path, line=c.line, body=c.body) for c in comments],
    )
    return comments


async def handle_github_event(
    orchestrator: ReviewOrchestrator,
    github_client: GitHubClient,
    event_name: str,
    payload: Mapping[str, Any],
) -> list[CommentRecord]:
    """处理单次 GitHub 事件：解析 PR、拉 diff、跑 review。不需要 review 的事件返回空列表。"""
    trigger = resolve_trigger(event_name=event_name)
    details = await resolve_change_details(github_client=github_client, trigger=trigger, payload=payload)
    if details is None:
        logger.info(f"No review requested by {event_name} event")
        return []
    logger.info(f"PR details: {details.owner}/{details.repo}#{details.pull_number} {details.title!r}")

    diff = await fetch_review_diff(github_client=github_client, trigger=trigger, payload=payload, details=details)
    if not diff:
        logger.info("No diff found")
        return []

    return await run_review(orchestrator=orchestrator, github_client=github_client, details=details, diff=diff)


def build_github_event_handler(
    config: AppConfig,
    http_client: httpx.AsyncClient,
    orchestrator: ReviewOrchestrator,
) -> GitHubEventHandler:
    """
    装配事件 handler：
    - 把外部依赖（GitHubClient）和业务编排（orchestrator）绑定起来
    - 返回一个 `async def handle(event_name, payload)` 给 action 入口 / webhook 路由调用
    """
    github_client = GitHubClient(
        api_base_url=str(config.github_api_url).rstrip("/"),
        token=config.github_token,
        http_client=http_client,
    )

    async def handle(event_name: str, payload: Mapping[str, Any]) -> list[CommentRecord]:
        return await handle_github_event(
            orchestrator=orchestrator,
            github_client=github_client,
            event_name=event_name,
            payload=payload,
        )

    return handle
