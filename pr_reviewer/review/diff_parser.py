from __future__ import annotations

import re
from collections.abc import Iterator

from unidiff import LINE_TYPE_ADDED
from unidiff import LINE_TYPE_CONTEXT
from unidiff import LINE_TYPE_REMOVED
from unidiff import Hunk
from unidiff import PatchedFile
from unidiff import PatchSet
from unidiff import UnidiffParseError

from pr_reviewer.review.models import DELETED_FILE_PATH
from pr_reviewer.review.models import DiffFile
from pr_reviewer.review.models import DiffHunk
from pr_reviewer.review.models import LineChange

_CHANGE_LINE_TYPES = (LINE_TYPE_ADDED, LINE_TYPE_REMOVED, LINE_TYPE_CONTEXT)
_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+\d+(?:,\d+)? @@")


class DiffParseError(ValueError):
    pass


def parse_diff(diff: str) -> list[DiffFile]:
    """
    把 unified diff 文本解析为 `DiffFile` 列表（保持文件/hunk/行的原始顺序）。

    - 空 diff 返回空列表
    - 格式非法直接抛 `DiffParseError`（diff 来自 GitHub，不做兜底修复）
    """
    if not diff.strip():
        return []
    try:
        patch = PatchSet(diff)
    except UnidiffParseError as exc:
        raise DiffParseError(f"Invalid unified diff: {exc}") from exc
    if len(patch) == 0:
        raise DiffParseError("Invalid unified diff: no file headers found")
    headers = iter(_literal_hunk_headers(diff=diff))
    files = [_to_diff_file(patched_file=f, headers=headers) for f in patch]
    if next(headers, None) is not None:
        raise DiffParseError("Invalid unified diff: unmatched hunk header")
    return files


def _literal_hunk_headers(diff: str) -> list[str]:
    # PatchSet 只保留数字，`@@ -1 +1 @@` 会被规整成 `-1,1`，原文从这里取
    return [line.rstrip("\r") for line in diff.splitlines() if _HUNK_HEADER.match(line)]


def _to_diff_file(patched_file: PatchedFile, headers: Iterator[str]) -> DiffFile:
    return DiffFile(
        target_path=_target_path(patched_file=patched_file),
        hunks=[_to_diff_hunk(hunk=h, header=_next_header(headers=headers)) for h in patched_file],
    )


def _target_path(patched_file: PatchedFile) -> str | None:
    if patched_file.is_removed_file:
        return DELETED_FILE_PATH
    target = patched_file.target_file
    if not target:
        return patched_file.path or None
    if target == DELETED_FILE_PATH:
        return DELETED_FILE_PATH
    # git diff 的 target 形如 b/src/a.py
    if target.startswith("b/"):
        return target[2:]
    return target


def _next_header(headers: Iterator[str]) -> str:
    header = next(headers, None)
    if header is None:
        raise DiffParseError("Invalid unified diff: missing hunk header")
    return header


def _to_diff_hunk(hunk: Hunk, header: str) -> DiffHunk:
    changes: list[LineChange] = []
    for line in hunk:
        # 跳过 "\ No newline at end of file"
        if line.line_type not in _CHANGE_LINE_TYPES:
            continue
        text = line.value.rstrip("\r\n")
        changes.append(
            LineChange(
                old_line_number=line.source_line_no,
                new_line_number=line.target_line_no,
                content=f"{line.line_type}{text}",
            )
        )
    return DiffHunk(header=header, changes=changes)
