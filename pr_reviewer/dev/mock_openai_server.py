"""
本地 Mock OpenAI-compatible LLM server。

用途：
- 在没有真实 LLM 的情况下，本地跑通闭环（review prompt -> `{"reviews": [...]}`）

启动：
  python -m pr_reviewer.dev.mock_openai_server
  然后设置 OPENAI_BASE_URL=http://127.0.0.1:9001
"""

from __future__ import annotations

import json
from collections.abc import Sequence

import uvicorn
from fastapi import FastAPI
from pydantic import BaseModel, Field

from pr_reviewer.llm.client import ChatMessage


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[ChatMessage] = Field(default_factory=list)


def _extract_first_diff_line_number(prompt: str) -> int | None:
    """
    从 review prompt 的 diff 代码块里取第一行的行号。

    形如：
      ```diff
      @@ -1,3 +1,4 @@
      2 +line2_new
      ```
    """
    in_diff_block = False
    for line in prompt.splitlines():
        stripped = line.strip()
        if stripped == "```diff":
            in_diff_block = True
            continue
        if not in_diff_block:
            continue
        if stripped == "```":
            break
        head = stripped.split(" ", 1)[0]
        if head.isdigit():
            return int(head)
    return None


def _build_mock_review_json(line_number: int | None) -> str:
    if line_number is None:
        return json.dumps({"reviews": []})
    comment = "[MOCK] Consider adding stricter error handling and boundary checks here."
    return json.dumps({"reviews": [{"lineNumber": str(line_number), "reviewComment": comment}]})


def _decide_mock_response(messages: Sequence[ChatMessage]) -> str:
    if not messages:
        raise ValueError("Mock server expects at least one message")
    prompt = "\n".join(m.content for m in messages)
    if '"reviews"' not in prompt:
        # 兜底：返回空 review，避免流程卡死
        return json.dumps({"reviews": []})
    return _build_mock_review_json(line_number=_extract_first_diff_line_number(prompt=prompt))


app = FastAPI(title="Mock OpenAI-compatible LLM", version="0.1.0")


@app.post("/v1/chat/completions")
async def chat_completions(req: ChatCompletionRequest) -> dict[str, object]:
    content = _decide_mock_response(messages=req.messages)
    return {
        "id": "chatcmpl-mock",
        "object": "chat.completion",
        "created": 0,
        "model": req.model,
        "choices": [
            {
                "index": 0,
                "finish_reason": "stop",
                "message": {"role": "assistant", "content": content},
            }
        ],
    }


def main() -> None:
    uvicorn.run(app, host="127.0.0.1", port=9001)


if __name__ == "__main__":
    main()
