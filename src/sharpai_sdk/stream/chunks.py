"""
Chunk Source：HTTP 响应体的拉取接口。

约定：
- 响应要么是“一次性完整 body”（非 chunked），要么是按发送顺序到达的 chunk 序列；
- chunk 序列以 `is_final=True` 的 chunk 结束（该 chunk 可以携带数据，也可以为空）；
- 底层 transport 可能在任意一次拉取中抛出异常（连接重置、超时、取消）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Callable, Protocol

import httpx


@dataclass(frozen=True)
class Chunk:
    """一段原始字节 + 是否为最后一个 chunk。"""

    data: bytes
    is_final: bool = False


class ChunkedResponse(Protocol):
    """
    Stream Driver 依赖的最小响应接口（由请求层提供）。

    字段：
    - status_code：HTTP 状态码
    - is_chunked：body 是否按 chunk 流式到达
    """

    status_code: int
    is_chunked: bool

    async def read_text(self) -> str:
        """一次性读取完整 body（UTF-8 解码）。"""
        ...

    def chunks(self) -> AsyncIterator[Chunk]:
        """按顺序拉取 chunk；最后一个 chunk 的 `is_final` 为 True。"""
        ...


ResponseOpener = Callable[[], AsyncContextManager[ChunkedResponse]]
"""每次调用发起一次新请求；退出上下文时释放连接。"""


def _is_chunked(resp: httpx.Response) -> bool:
    """
    判断响应 body 是否按 chunk 流式到达。

    规则：
    - `Transfer-Encoding: chunked` → chunked
    - 否则若没有 `Content-Length`（HTTP/2 流式、close-delimited body）→ 也按 chunked 处理
    """

    te = resp.headers.get("transfer-encoding", "")
    if "chunked" in te.lower():
        return True
    return "content-length" not in resp.headers


class HttpxChunkedResponse:
    """
    把以 streaming 模式打开的 `httpx.Response` 适配为 `ChunkedResponse`。

    说明：
    - 使用 `aiter_bytes()`（已处理 content-encoding），chunk 边界由网络决定，与行边界无关；
    - transport 的 body 结束时补发一个空的 final chunk。
    """

    def __init__(self, resp: httpx.Response) -> None:
        self._resp = resp
        self.status_code = int(resp.status_code)
        self.is_chunked = _is_chunked(resp)

    async def read_text(self) -> str:
        raw = await self._resp.aread()
        return raw.decode("utf-8", errors="replace")

    async def chunks(self) -> AsyncIterator[Chunk]:
        async for data in self._resp.aiter_bytes():
            if data:
                yield Chunk(data=data)
        yield Chunk(data=b"", is_final=True)


__all__ = ["Chunk", "ChunkedResponse", "HttpxChunkedResponse", "ResponseOpener"]
