from __future__ import annotations

import json

import anyio
import httpx
import pytest

from conftest import SINGLE_ADD_DIFF
from conftest import TWO_FILES_WITH_DELETION_DIFF
from conftest import FakeLLMClient
from conftest import RecordingGitHub
from conftest import build_github_client
from conftest import reviews_json
from pr_reviewer.review.diff_parser import DiffParseError
from pr_reviewer.review.diff_parser import parse_diff
from pr_reviewer.review.models import ChangeDetails
from pr_reviewer.review.models import CommentRecord
from pr_reviewer.review.orchestrator import analyze_files
from pr_reviewer.review.orchestrator import build_review_orchestrator
from pr_reviewer.review.orchestrator import run_review

REVIEWS_PATH = "/repos/o/r/pulls/7/reviews"


def _details() -> ChangeDetails:
    return ChangeDetails(owner="o", repo="r", pull_number=7, title="t", description="d")


def _reviews_github() -> RecordingGitHub:
    return RecordingGitHub(routes={("POST", REVIEWS_PATH): lambda request: httpx.Response(200, json={"id": 1})})


def _per_hunk_responder(prompt: str) -> str:
    if "HUNK_ONE" in prompt:
        return reviews_json(("2", "hunk one finding"))
    if "HUNK_TWO" in prompt:
        raise httpx.ReadTimeout("model timed out")
    if "FILE_B" in prompt:
        return reviews_json(("10", "file b finding"))
    raise AssertionError(f"unexpected prompt: {prompt}")


@pytest.mark.anyio
async def test_analyze_files_isolates_failed_hunk() -> None:
    llm = FakeLLMClient(responder=_per_hunk_responder)
    comments = await analyze_files(llm_client=llm, files=parse_diff(diff=TWO_FILES_WITH_DELETION_DIFF), details=_details())
    assert comments == [
        CommentRecord(body="hunk one finding", path="src/a.py", line=2),
        CommentRecord(body="file b finding", path="src/b.py", line=10),
    ]


@pytest.mark.anyio
async def test_analyze_files_skips_deleted_files() -> None:
    llm = FakeLLMClient(responder=lambda prompt: reviews_json())
    await analyze_files(llm_client=llm, files=parse_diff(diff=TWO_FILES_WITH_DELETION_DIFF), details=_details())
    # src/a.py 两个 hunk + src/b.py 一个 hunk；被删除的 old.py 不会进入 prompt
    assert len(llm.prompts) == 3
    assert not any("old.py" in p for p in llm.prompts)


@pytest.mark.anyio
async def test_analyze_files_keeps_diff_order_with_concurrency() -> None:
    async def slow_first(prompt: str) -> None:
        if "HUNK_ONE" in prompt:
            await anyio.sleep(0.05)

    class SlowFirstLLM(FakeLLMClient):
        async def complete_text(self, messages):  # type: ignore[no-untyped-def]
            await slow_first(messages[0].content)
            return await super().complete_text(messages)

    def responder(prompt: str) -> str:
        if "HUNK_ONE" in prompt:
            return reviews_json(("2", "first"))
        if "HUNK_TWO" in prompt:
            return reviews_json(("21", "second"))
        return reviews_json(("10", "third"))

    llm = SlowFirstLLM(responder=responder)
    comments = await analyze_files(
        llm_client=llm,
        files=parse_diff(diff=TWO_FILES_WITH_DELETION_DIFF),
        details=_details(),
        concurrency=3,
    )
    assert [c.body for c in comments] == ["first", "second", "third"]


@pytest.mark.anyio
async def test_analyze_files_rejects_invalid_concurrency() -> None:
    llm = FakeLLMClient(responder=lambda prompt: reviews_json())
    with pytest.raises(ValueError):
        await analyze_files(llm_client=llm, files=[], details=_details(), concurrency=0)


@pytest.mark.anyio
async def test_run_review_end_to_end_posts_single_review() -> None:
    github = _reviews_github()
    llm = FakeLLMClient(responder=lambda prompt: '{"reviews":[{"lineNumber":"5","reviewComment":"avoid mutation here"}]}')
    orchestrator = build_review_orchestrator(llm_client=llm)

    comments = await run_review(
        orchestrator=orchestrator,
        github_client=build_github_client(github),
        details=_details(),
        diff=SINGLE_ADD_DIFF,
    )

    assert comments == [CommentRecord(body="avoid mutation here", path="src/a.ts", line=5)]
    assert github.paths("POST") == [REVIEWS_PATH]
    payload = json.loads(github.requests[0].content)
    assert payload == {
        "event": "COMMENT",
        "comments": [{"path": "src/a.ts", "line": 5, "body": "avoid mutation here"}],
    }


@pytest.mark.anyio
async def test_run_review_without_comments_does_not_publish() -> None:
    github = _reviews_github()
    llm = FakeLLMClient(responder=lambda prompt: '{"reviews": []}')
    orchestrator = build_review_orchestrator(llm_client=llm)

    comments = await run_review(
        orchestrator=orchestrator,
        github_client=build_github_client(github),
        details=_details(),
        diff=TWO_FILES_WITH_DELETION_DIFF,
    )

    assert comments == []
    assert github.requests == []


@pytest.mark.anyio
async def test_run_review_applies_exclude_patterns() -> None:
    github = _reviews_github()
    llm = FakeLLMClient(responder=lambda prompt: reviews_json(("1", "x")))
    orchestrator = build_review_orchestrator(llm_client=llm, exclude_patterns=["src/a.py"])

    comments = await run_review(
        orchestrator=orchestrator,
        github_client=build_github_client(github),
        details=_details(),
        diff=TWO_FILES_WITH_DELETION_DIFF,
    )

    assert {c.path for c in comments} == {"src/b.py"}
    assert len(llm.prompts) == 1


@pytest.mark.anyio
async def test_run_review_publish_failure_propagates() -> None:
    github = RecordingGitHub(
        routes={("POST", REVIEWS_PATH): lambda request: httpx.Response(422, json={"message": "Unprocessable"})}
    )
    llm = FakeLLMClient(responder=lambda prompt: reviews_json(("5", "x")))
    orchestrator = build_review_orchestrator(llm_client=llm)

    with pytest.raises(RuntimeError, match="GitHub API error 422"):
        await run_review(
            orchestrator=orchestrator,
            github_client=build_github_client(github),
            details=_details(),
            diff=SINGLE_ADD_DIFF,
        )


@pytest.mark.anyio
async def test_run_review_malformed_diff_is_fatal() -> None:
    llm = FakeLLMClient(responder=lambda prompt: reviews_json())
    orchestrator = build_review_orchestrator(llm_client=llm)
    with pytest.raises(DiffParseError):
        await run_review(
            orchestrator=orchestrator,
            github_client=build_github_client(_reviews_github()),
            details=_details(),
            diff="definitely not a diff",
        )
