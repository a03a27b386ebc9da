"""
应用配置加载。

设计目标：
- **严格**：缺少必要环境变量就直接报错（避免“看起来跑了其实没配置好”）
- **类型安全**：使用 Pydantic 校验 URL/整数等，减少运行时踩坑
- **可测试**：核心加载函数接收 `environ` 显式输入，便于单元测试

GitHub Action 会把 `with:` 里的 input 注入为 `INPUT_<NAME>` 环境变量，
所以每个配置项先读 `INPUT_<NAME>`，再退回到同名的普通环境变量。
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, Field, HttpUrl

from pr_reviewer.github.client import DEFAULT_GITHUB_API_URL
from pr_reviewer.llm.client import DEFAULT_OPENAI_BASE_URL
from pr_reviewer.review.path_filter import parse_exclude_patterns

REQUIRED_KEYS: tuple[str, ...] = ("GITHUB_TOKEN", "OPENAI_API_KEY", "OPENAI_API_MODEL")


class AppConfig(BaseModel):
    """一次 review 运行所需的配置。"""

    github_token: str
    github_api_url: HttpUrl = Field(default=DEFAULT_GITHUB_API_URL, validate_default=True)
    openai_api_key: str
    openai_api_model: str
    openai_base_url: HttpUrl = Field(default=DEFAULT_OPENAI_BASE_URL, validate_default=True)
    exclude_patterns: list[str] = Field(default_factory=list)
    review_concurrency: int = Field(default=1, ge=1)
    # 只有 webhook server 模式需要
    github_webhook_secret: str | None = None


def _get(environ: Mapping[str, str], key: str) -> str:
    """优先读 action input（INPUT_<KEY>），没有再读普通环境变量。"""
    value = environ.get(f"INPUT_{key}") or environ.get(key) or ""
    return value.strip()


def load_config_from_env(environ: Mapping[str, str]) -> AppConfig:
    """
    从环境变量加载并校验配置。

    - **输入**：`environ`（例如 `os.environ`）
    - **输出**：`AppConfig`
    - **失败**：必填项缺失/为空则抛 `ValueError`；格式非法由 Pydantic 抛 `ValidationError`
    """
    missing: list[str] = [key for key in REQUIRED_KEYS if not _get(environ, key)]
    if missing:
        raise ValueError(f"Missing required env vars: {', '.join(missing)}")

    optional: dict[str, object] = {}
    if _get(environ, "GITHUB_API_URL"):
        optional["github_api_url"] = _get(environ, "GITHUB_API_URL")
    if _get(environ, "OPENAI_BASE_URL"):
        optional["openai_base_url"] = _get(environ, "OPENAI_BASE_URL")
    if _get(environ, "REVIEW_CONCURRENCY"):
        optional["review_concurrency"] = _get(environ, "REVIEW_CONCURRENCY")
    if _get(environ, "GITHUB_WEBHOOK_SECRET"):
        optional["github_webhook_secret"] = _get(environ, "GITHUB_WEBHOOK_SECRET")

    return AppConfig(
        github_token=_get(environ, "GITHUB_TOKEN"),
        openai_api_key=_get(environ, "OPENAI_API_KEY"),
        openai_api_model=_get(environ, "OPENAI_API_MODEL"),
        exclude_patterns=parse_exclude_patterns(raw=_get(environ, "EXCLUDE")),
        **optional,
    )
