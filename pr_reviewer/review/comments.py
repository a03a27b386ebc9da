from __future__ import annotations

import logging
from collections.abc import Sequence

from pr_reviewer.review.models import CommentRecord
from pr_reviewer.review.models import DiffFile
from pr_reviewer.review.models import Finding

logger = logging.getLogger(__name__)


def coerce_line_number(raw: str) -> int | None:
    """`"5"` / `" 5 "` / `"5.0"` -> 5；无法转换返回 None。"""
    text = raw.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        return None
    if not value.is_integer():
        return None
    return int(value)


def map_findings_to_comments(file: DiffFile, findings: Sequence[Finding]) -> list[CommentRecord]:
    """
    把一个 hunk 的 findings 转成锚定到 `(path, line)` 的评论。

    行号无法转换为整数的 finding 会被丢弃（写回 GitHub 必然失败，没必要带着走）。
    """
    if not file.target_path:
        return []

    comments: list[CommentRecord] = []
    for finding in findings:
        line = coerce_line_number(raw=finding.lineNumber)
        if line is None:
            logger.warning(f"Dropping finding with invalid line number {finding.lineNumber!r} in {file.target_path}")
            continue
        comments.append(CommentRecord(body=finding.reviewComment, path=file.target_path, line=line))
    return comments
