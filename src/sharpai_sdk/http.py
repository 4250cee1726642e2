"""
请求层：URL/body/超时/日志 → httpx → `ChunkedResponse`。

说明：
- 每次调用创建一个独立的 `httpx.AsyncClient`（不做连接池复用，也不做重试）；
- 单次调用（post_json/get_json/...）读取完整 body 后解码；非 2xx 返回 None（body 仍会读取并按配置记日志）；
- 流式调用（post_stream）只负责打开响应，解码交给 `sharpai_sdk.stream.driver`。
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

import httpx

from sharpai_sdk.core.errors import ResponseDecodeError
from sharpai_sdk.observability.log_sink import LogSink, emit
from sharpai_sdk.stream.chunks import ChunkedResponse, HttpxChunkedResponse
from sharpai_sdk.stream.decoder import RecordDecoder
from sharpai_sdk.stream.driver import CancelSignal, RecordStream
from sharpai_sdk.stream.transforms import LineTransform

JSON_CONTENT_TYPE = "application/json"


def _is_success(status: int) -> bool:
    return 200 <= int(status) <= 299


def encode_body(data: Any) -> bytes:
    """
    把请求对象序列化为 UTF-8 JSON。

    支持：
    - 带 `to_payload()` 的请求 dataclass
    - pydantic model（`model_dump(exclude_none=True)`）
    - 其它可 JSON 序列化的对象（dict/list/...）
    """

    if data is None:
        raise ValueError("request body is required")
    to_payload = getattr(data, "to_payload", None)
    if callable(to_payload):
        payload = to_payload()
    elif hasattr(data, "model_dump"):
        payload = data.model_dump(mode="json", exclude_none=True)
    else:
        payload = data
    return json.dumps(payload, ensure_ascii=False).encode("utf-8")


class HttpTransport:
    """
    SDK 的 HTTP 访问层。

    参数：
    - endpoint：服务端根地址（末尾 `/` 会被去掉）
    - timeout_ms：单次请求超时（毫秒）
    - log_requests/log_responses：是否输出请求/响应诊断日志
    - sink：日志 sink（None 表示不输出）
    - transport：可选的 httpx transport（测试时注入 `httpx.MockTransport`）
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_ms: int,
        log_requests: bool = False,
        log_responses: bool = False,
        sink: Optional[LogSink] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.endpoint = str(endpoint).rstrip("/")
        self.timeout_ms = int(timeout_ms)
        self.log_requests = bool(log_requests)
        self.log_responses = bool(log_responses)
        self.sink = sink
        self._transport = transport
        self._headers = dict(headers or {})

    def url(self, path: str) -> str:
        """拼接完整 URL（path 以 `/` 开头）。"""

        return f"{self.endpoint}{path}"

    def _client(self) -> httpx.AsyncClient:
        timeout = httpx.Timeout(self.timeout_ms / 1000.0)
        if self._transport is not None:
            return httpx.AsyncClient(timeout=timeout, transport=self._transport)
        return httpx.AsyncClient(timeout=timeout)

    @asynccontextmanager
    async def open(self, method: str, url: str, body: Optional[bytes] = None) -> AsyncIterator[ChunkedResponse]:
        """
        以 streaming 模式打开一次请求；退出上下文时关闭响应与 client（释放连接）。

        说明：
        - 连接失败/超时等 transport 异常原样抛出。
        """

        if not url:
            raise ValueError("url is required")
        headers = {"Accept": JSON_CONTENT_TYPE, **self._headers}
        if body is not None:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        if self.log_requests:
            if body is not None:
                emit(self.sink, "DEBUG", f"{method} request to {url} with {len(body)} bytes")
            else:
                emit(self.sink, "DEBUG", f"{method} request to {url}")

        async with self._client() as client:
            async with client.stream(method, url, content=body, headers=headers) as resp:
                yield HttpxChunkedResponse(resp)

    async def read_response(self, resp: ChunkedResponse) -> str:
        """读取完整 body：chunked 响应按顺序拼接全部 chunk，否则一次性读取。"""

        if not resp.is_chunked:
            return await resp.read_text()
        parts = []
        async for chunk in resp.chunks():
            if chunk.data:
                parts.append(chunk.data)
        return b"".join(parts).decode("utf-8", errors="replace")

    async def send(self, method: str, url: str, body: Optional[bytes] = None) -> Tuple[int, str]:
        """发送一次请求并读取完整 body；返回 `(status_code, text)`，不区分成功与否。"""

        async with self.open(method, url, body) as resp:
            text = await self.read_response(resp)
            status = resp.status_code
        if self.log_responses:
            emit(self.sink, "DEBUG", f"Response from {url} (status {status}): {text}")
        if _is_success(status):
            emit(self.sink, "DEBUG", f"Success from {url}: {status}, {len(text)} bytes")
        else:
            emit(self.sink, "WARN", f"Non-success from {url}: {status}, {len(text)} bytes")
        return status, text

    async def _typed(self, method: str, url: str, body: Optional[bytes], shape: Any) -> Any:
        status, text = await self.send(method, url, body)
        if not _is_success(status):
            return None
        if not text.strip():
            emit(self.sink, "DEBUG", "Empty response body, returning None")
            return None
        emit(self.sink, "DEBUG", "Deserializing response body")
        result = RecordDecoder(shape).decode(text)
        if result.error is not None:
            raise ResponseDecodeError(result.error, url=url, body=text)
        return result.record

    # ---- 单次调用 ----

    async def post_json(self, url: str, data: Any, shape: Any) -> Any:
        """POST JSON 并把 2xx body 解码为 `shape`；非 2xx / 空 body 返回 None。"""

        return await self._typed("POST", url, encode_body(data), shape)

    async def get_json(self, url: str, shape: Any) -> Any:
        return await self._typed("GET", url, None, shape)

    async def delete_json(self, url: str, data: Any, shape: Any) -> Any:
        return await self._typed("DELETE", url, encode_body(data), shape)

    async def post_raw(self, url: str, data: Any) -> Optional[str]:
        """POST JSON 并返回原始 body 字符串；非 2xx 返回 None。"""

        status, text = await self.send("POST", url, encode_body(data))
        return text if _is_success(status) else None

    async def get_raw(self, url: str) -> Optional[str]:
        status, text = await self.send("GET", url, None)
        return text if _is_success(status) else None

    # ---- 流式调用 ----

    def post_stream(
        self,
        url: str,
        data: Any,
        shape: Any,
        *,
        transform: Optional[LineTransform] = None,
        stop_when: Optional[Callable[[Any], bool]] = None,
        cancel_event: Optional[CancelSignal] = None,
    ) -> RecordStream[Any]:
        """
        构造一个 POST 流（惰性：迭代时才发送请求；每次迭代重新发送）。

        参数：
        - shape：每行 record 的目标类型
        - transform：解码前的行改写（例如去掉 `data: ` 前缀）
        - stop_when：对每条 record 求值；返回 True 时在交付该 record 后结束流
        - cancel_event：协作式取消信号（每次拉取 chunk 前检查）
        """

        if not url:
            raise ValueError("url is required")
        body = encode_body(data)

        def _opener():  # type: ignore[no-untyped-def]
            return self.open("POST", url, body)

        return RecordStream(
            _opener,
            shape,
            transform=transform,
            stop_when=stop_when,
            sink=self.sink,
            log_responses=self.log_responses,
            cancel_event=cancel_event,
            label=url,
        )


__all__ = ["HttpTransport", "JSON_CONTENT_TYPE", "encode_body"]
