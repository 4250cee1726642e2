"""
Ollama 风格 API（`/api/*`）。

说明：
- 单次调用：非 2xx 或空 body 返回 None（由请求层统一处理）；
- 流式调用：返回 `RecordStream`，迭代时才发送请求；NDJSON 每行一个 record；
  用 `async with stream as s: async for rec in s:` 消费，提前退出时立即释放连接。
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any, List, Optional

from pydantic import ValidationError

from sharpai_sdk.core.errors import ResponseDecodeError
from sharpai_sdk.http import HttpTransport
from sharpai_sdk.models.common import drop_none
from sharpai_sdk.models.ollama import (
    OllamaDeleteModelRequest,
    OllamaGenerateChatCompletionChunk,
    OllamaGenerateChatCompletionRequest,
    OllamaGenerateCompletionRequest,
    OllamaGenerateCompletionResult,
    OllamaGenerateEmbeddingsRequest,
    OllamaGenerateEmbeddingsResult,
    OllamaLocalModel,
    OllamaPullModelRequest,
    OllamaStreamingCompletionResult,
)
from sharpai_sdk.models.pull import PullModelProgress
from sharpai_sdk.stream.decoder import RecordDecoder
from sharpai_sdk.stream.driver import CancelSignal, RecordStream

PATH_PULL = "/api/pull"
PATH_DELETE = "/api/delete"
PATH_TAGS = "/api/tags"
PATH_EMBED = "/api/embed"
PATH_GENERATE = "/api/generate"
PATH_CHAT = "/api/chat"


def _is_done(record: Any) -> bool:
    return bool(getattr(record, "done", False))


def _pull_complete(record: PullModelProgress) -> bool:
    return record.is_complete()


class OllamaMethods:
    """Ollama 风格方法集合（由 `SharpAISdk.ollama` 暴露）。"""

    def __init__(self, http: HttpTransport) -> None:
        if http is None:
            raise ValueError("http transport is required")
        self._http = http

    def pull_model(
        self, request: OllamaPullModelRequest, *, cancel_event: Optional[CancelSignal] = None
    ) -> RecordStream[PullModelProgress]:
        """
        拉取模型并流式返回进度。

        说明：
        - 收到 `status == "success"`（大小写不敏感）的 record 后结束流（该 record 仍会交付）；
        - 非 2xx：不产出任何 record，错误 body 可通过 `last_session.diagnostic_body` 读取。
        """

        return self._http.post_stream(
            self._http.url(PATH_PULL),
            request,
            PullModelProgress,
            stop_when=_pull_complete,
            cancel_event=cancel_event,
        )

    async def delete_model(self, request: OllamaDeleteModelRequest) -> Optional[Any]:
        """删除本地模型；返回服务端 JSON（通常为空，此时为 None）。"""

        return await self._http.delete_json(self._http.url(PATH_DELETE), request, Any)

    async def list_local_models(self) -> List[OllamaLocalModel]:
        """
        列出本地模型。

        说明：
        - 兼容两种响应：直接数组，或 `{"models": [...]}`；
        - 非 2xx / 空 body / 其它形态：返回空列表。
        """

        url = self._http.url(PATH_TAGS)
        text = await self._http.get_raw(url)
        if not text or not text.strip():
            return []
        try:
            doc = json.loads(text)
            if isinstance(doc, dict):
                doc = doc.get("models")
            if not isinstance(doc, list):
                return []
            return list(RecordDecoder(List[OllamaLocalModel]).decode_value(doc))
        except (ValueError, ValidationError) as exc:
            raise ResponseDecodeError(str(exc), url=url, body=text) from exc

    async def generate_embeddings(self, request: OllamaGenerateEmbeddingsRequest) -> Optional[OllamaGenerateEmbeddingsResult]:
        return await self._http.post_json(self._http.url(PATH_EMBED), request, OllamaGenerateEmbeddingsResult)

    async def generate_multiple_embeddings(
        self, request: OllamaGenerateEmbeddingsRequest
    ) -> Optional[OllamaGenerateEmbeddingsResult]:
        """多输入 embeddings：多于一个输入时只发送 `model` + `input` 数组。"""

        if request is None:
            raise ValueError("request is required")
        inputs = request.inputs()
        body: Any = request
        if len(inputs) > 1:
            body = drop_none({"model": request.model, "input": inputs})
        return await self._http.post_json(self._http.url(PATH_EMBED), body, OllamaGenerateEmbeddingsResult)

    async def generate_completion(self, request: OllamaGenerateCompletionRequest) -> Optional[OllamaGenerateCompletionResult]:
        return await self._http.post_json(self._http.url(PATH_GENERATE), request, OllamaGenerateCompletionResult)

    async def generate_chat_completion(
        self, request: OllamaGenerateChatCompletionRequest
    ) -> Optional[OllamaGenerateCompletionResult]:
        return await self._http.post_json(self._http.url(PATH_CHAT), request, OllamaGenerateCompletionResult)

    def generate_completion_stream(
        self, request: OllamaGenerateCompletionRequest, *, cancel_event: Optional[CancelSignal] = None
    ) -> RecordStream[OllamaStreamingCompletionResult]:
        """流式补全（强制 `stream=True`）；收到 `done=true` 的 record 后结束。"""

        return self._http.post_stream(
            self._http.url(PATH_GENERATE),
            replace(request, stream=True),
            OllamaStreamingCompletionResult,
            stop_when=_is_done,
            cancel_event=cancel_event,
        )

    def generate_chat_completion_stream(
        self, request: OllamaGenerateChatCompletionRequest, *, cancel_event: Optional[CancelSignal] = None
    ) -> RecordStream[OllamaGenerateChatCompletionChunk]:
        """流式对话（强制 `stream=True`）；每条 record 都带 assistant `message`。"""

        return self._http.post_stream(
            self._http.url(PATH_CHAT),
            replace(request, stream=True),
            OllamaGenerateChatCompletionChunk,
            stop_when=_is_done,
            cancel_event=cancel_event,
        )


__all__ = ["OllamaMethods"]
