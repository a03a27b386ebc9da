"""
单个 hunk 的 review prompt。

prompt 结构是和 `reviewer.parse_review_reply` 之间的约定：
模型只能针对 diff 代码块里出现的行号给出 `{"reviews": [...]}`。
"""

from __future__ import annotations

from pr_reviewer.review.models import ChangeDetails
from pr_reviewer.review.models import DiffFile
from pr_reviewer.review.models import DiffHunk


def _review_instructions() -> str:
    return (
        "Your task is to review pull requests. Instructions:\n"
        '- Provide the response in following JSON format:  {"reviews": [{"lineNumber":  <line_number>, '
        '"reviewComment": "<review comment>"}]}\n'
        "- Do not give positive comments or compliments.\n"
        '- Provide comments and suggestions ONLY if there is something to improve, otherwise "reviews" '
        "should be an empty array.\n"
        "- Write the comment in GitHub Markdown format.\n"
        "- Use the given description only for the overall context and only comment the code.\n"
        "- IMPORTANT: NEVER suggest adding comments to the code.\n"
    )


def _render_hunk(hunk: DiffHunk) -> str:
    """hunk header + 每行 `<目标行号> <diff 原文>`。"""
    lines = [hunk.header]
    lines.extend(f"{c.destination_line_number} {c.content}" for c in hunk.changes)
    return "\n".join(lines)


def build_review_prompt(file: DiffFile, hunk: DiffHunk, details: ChangeDetails) -> str:
    return (
        f"{_review_instructions()}\n"
        f'Review the following code diff in the file "{file.target_path}" and take the pull request '
        "title and description into account when writing the response.\n\n"
        f"Pull request title: {details.title}\n"
        "Pull request description:\n\n"
        "---\n"
        f"{details.description}\n"
        "---\n\n"
        "Git diff to review:\n\n"
        "```diff\n"
        f"{_render_hunk(hunk=hunk)}\n"
        "```\n"
    )
