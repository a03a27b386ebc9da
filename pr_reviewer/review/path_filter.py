"""
exclude 规则（glob）过滤。

匹配语义与常见的路径 glob 一致（wcmatch GLOBSTAR，大小写敏感）：
- `*` / `?` / `[...]` 不跨 `/`
- `**` 匹配零到多层目录，所以 `**/*.md` 也能排除根目录的 `README.md`
"""

from __future__ import annotations

from collections.abc import Sequence

from wcmatch import glob

from pr_reviewer.review.models import DiffFile

GLOB_FLAGS = glob.GLOBSTAR | glob.CASE


def parse_exclude_patterns(raw: str) -> list[str]:
    """把 `"*.md, dist/**"` 这样的配置拆成 pattern 列表（去空白、去空项）。"""
    return [p.strip() for p in raw.split(",") if p.strip()]


def is_included(path: str, patterns: Sequence[str]) -> bool:
    if not patterns:
        return True
    return not glob.globmatch(path, list(patterns), flags=GLOB_FLAGS)


def filter_excluded_files(files: Sequence[DiffFile], patterns: Sequence[str]) -> list[DiffFile]:
    return [f for f in files if is_included(path=f.target_path or "", patterns=patterns)]
