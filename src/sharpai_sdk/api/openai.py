"""
OpenAI-compatible API（`/v1/*`）。

说明：
- 流式端点以 event-stream 格式返回：每个事件一行 `data: {...}`，以 `data: [DONE]` 结束；
- 行改写使用 `sse_event_line`：去掉前缀，`[DONE]` 视为空行跳过（不算解码失败）；
- 流式方法返回 `RecordStream`，用 `async with stream as s:` 消费以保证提前退出时释放连接。
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from sharpai_sdk.http import HttpTransport
from sharpai_sdk.models.common import drop_none
from sharpai_sdk.models.openai import (
    OpenAIGenerateChatCompletionRequest,
    OpenAIGenerateChatCompletionResult,
    OpenAIGenerateCompletionRequest,
    OpenAIGenerateCompletionResult,
    OpenAIGenerateEmbeddingsRequest,
    OpenAIGenerateEmbeddingsResult,
    OpenAIStreamingCompletionResult,
)
from sharpai_sdk.stream.driver import CancelSignal, RecordStream
from sharpai_sdk.stream.transforms import sse_event_line

PATH_EMBEDDINGS = "/v1/embeddings"
PATH_COMPLETIONS = "/v1/completions"
PATH_CHAT_COMPLETIONS = "/v1/chat/completions"


class OpenAIMethods:
    """OpenAI-compatible 方法集合（由 `SharpAISdk.openai` 暴露）。"""

    def __init__(self, http: HttpTransport) -> None:
        if http is None:
            raise ValueError("http transport is required")
        self._http = http

    async def generate_embeddings(self, request: OpenAIGenerateEmbeddingsRequest) -> Optional[OpenAIGenerateEmbeddingsResult]:
        if request is None:
            raise ValueError("request is required")
        return await self._http.post_json(self._http.url(PATH_EMBEDDINGS), request, OpenAIGenerateEmbeddingsResult)

    async def generate_multiple_embeddings(
        self, request: OpenAIGenerateEmbeddingsRequest
    ) -> Optional[OpenAIGenerateEmbeddingsResult]:
        """多输入 embeddings：多于一个输入时只发送 `model` + `input` 数组。"""

        if request is None:
            raise ValueError("request is required")
        inputs = request.inputs()
        body: Any = request
        if len(inputs) > 1:
            body = drop_none({"model": request.model, "input": inputs})
        return await self._http.post_json(self._http.url(PATH_EMBEDDINGS), body, OpenAIGenerateEmbeddingsResult)

    async def generate_completion(self, request: OpenAIGenerateCompletionRequest) -> Optional[OpenAIGenerateCompletionResult]:
        if request is None:
            raise ValueError("request is required")
        return await self._http.post_json(self._http.url(PATH_COMPLETIONS), request, OpenAIGenerateCompletionResult)

    def generate_completion_stream(
        self, request: OpenAIGenerateCompletionRequest, *, cancel_event: Optional[CancelSignal] = None
    ) -> RecordStream[OpenAIStreamingCompletionResult]:
        """流式补全（强制 `stream=True`）。"""

        if request is None:
            raise ValueError("request is required")
        return self._http.post_stream(
            self._http.url(PATH_COMPLETIONS),
            replace(request, stream=True),
            OpenAIStreamingCompletionResult,
            transform=sse_event_line,
            cancel_event=cancel_event,
        )

    async def generate_chat_completion(
        self, request: OpenAIGenerateChatCompletionRequest
    ) -> Optional[OpenAIGenerateChatCompletionResult]:
        if request is None:
            raise ValueError("request is required")
        return await self._http.post_json(
            self._http.url(PATH_CHAT_COMPLETIONS), request, OpenAIGenerateChatCompletionResult
        )

    def generate_chat_completion_stream(
        self, request: OpenAIGenerateChatCompletionRequest, *, cancel_event: Optional[CancelSignal] = None
    ) -> RecordStream[OpenAIStreamingCompletionResult]:
        """流式对话（强制 `stream=True`）；每条 record 的增量文本在 `choices[*].delta.content`。"""

        if request is None:
            raise ValueError("request is required")
        return self._http.post_stream(
            self._http.url(PATH_CHAT_COMPLETIONS),
            replace(request, stream=True),
            OpenAIStreamingCompletionResult,
            transform=sse_event_line,
            cancel_event=cancel_event,
        )


__all__ = ["OpenAIMethods"]
