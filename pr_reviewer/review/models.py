"""
Review 领域模型（Pydantic）。

用途：
- 明确 pipeline 各阶段输入/输出的数据结构（diff -> prompt -> findings -> comments）
- 作为 LLM JSON 输出的 schema 校验（`ReviewReply`）
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# 被删除文件的 target path（unified diff 约定）
DELETED_FILE_PATH = "/dev/null"


class ChangeDetails(BaseModel):
    """一次 PR 的身份与叙述上下文（每次运行只创建一次）。"""

    owner: str
    repo: str
    pull_number: int
    title: str = ""
    description: str = ""


class LineChange(BaseModel):
    """
    hunk 内的一行变更。

    - 新增行只有 new_line_number，删除行只有 old_line_number，上下文行两者都有
    - content 是 diff 原文（包含 `+`/`-`/` ` 前缀）
    """

    old_line_number: int | None = None
    new_line_number: int | None = None
    content: str

    @property
    def destination_line_number(self) -> int:
        """写进 prompt 的行号：优先 new，没有则退回 old。"""
        if self.new_line_number is not None:
            return self.new_line_number
        if self.old_line_number is not None:
            return self.old_line_number
        raise ValueError(f"Line change has no line number: {self.content!r}")


class DiffHunk(BaseModel):
    header: str
    changes: list[LineChange] = Field(default_factory=list)


class DiffFile(BaseModel):
    """单个文件的 diff。target_path 为 `DELETED_FILE_PATH` 表示文件被删除。"""

    target_path: str | None
    hunks: list[DiffHunk] = Field(default_factory=list)

    @property
    def is_deleted(self) -> bool:
        return self.target_path == DELETED_FILE_PATH


class Finding(BaseModel):
    """
    LLM 输出的单条建议。

    lineNumber 按约定是文本；模型经常直接给数字，这里统一转成字符串，
    真正的整数转换留给 comment mapper。
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    lineNumber: str
    reviewComment: str


class ReviewReply(BaseModel):
    """LLM 回复 schema：`{"reviews": [...]}`。"""

    reviews: list[Finding]


class CommentRecord(BaseModel):
    """最终写回 GitHub 的行内评论。"""

    body: str
    path: str
    line: int
