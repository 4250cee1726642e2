"""
内存版 Chunk Source（离线回归夹具）。

用途：
- 在不依赖真实服务器/网络的情况下回归 Stream Driver 的切行、解码、stop 谓词与取消逻辑；
- 可脚本化注入 transport 失败（在第 N 个 chunk 处抛异常）。
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Sequence, Union

from sharpai_sdk.stream.chunks import Chunk, ChunkedResponse

ChunkLike = Union[bytes, str]


def _as_bytes(data: ChunkLike) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


@dataclass
class StaticChunkedResponse:
    """
    预设内容的响应。

    字段：
    - status_code：HTTP 状态码
    - chunks：chunked 模式下按顺序吐出的 chunk（最后一个自动标记为 final）
    - body：非 chunked 模式下的完整 body（`chunks` 为 None 时生效）
    - raise_at：在吐出第几个 chunk 之前抛出 `raise_exc`（0 表示第一次拉取即失败）
    - mark_final：为 False 时不发出 final 标记，直接结束迭代（模拟不规范的 chunk 源）
    """

    status_code: int = 200
    chunks: Optional[Sequence[ChunkLike]] = None
    body: ChunkLike = ""
    raise_at: Optional[int] = None
    raise_exc: Optional[BaseException] = None
    mark_final: bool = True
    pulled: int = field(default=0, init=False)
    closed: bool = field(default=False, init=False)

    @property
    def is_chunked(self) -> bool:
        return self.chunks is not None

    async def read_text(self) -> str:
        if self.chunks is not None:
            return b"".join(_as_bytes(c) for c in self.chunks).decode("utf-8", errors="replace")
        return _as_bytes(self.body).decode("utf-8", errors="replace")

    async def chunks_iter(self) -> AsyncIterator[Chunk]:
        items: List[ChunkLike] = list(self.chunks or [])
        for i, data in enumerate(items):
            if self.raise_at is not None and i == self.raise_at and self.raise_exc is not None:
                raise self.raise_exc
            self.pulled += 1
            is_last = i == len(items) - 1
            yield Chunk(data=_as_bytes(data), is_final=is_last and self.mark_final)
        if self.raise_at is not None and self.raise_at >= len(items) and self.raise_exc is not None:
            raise self.raise_exc


class _Adapter:
    """把 `StaticChunkedResponse` 暴露为 `ChunkedResponse` 协议（`chunks()` 为方法）。"""

    def __init__(self, resp: StaticChunkedResponse) -> None:
        self._resp = resp
        self.status_code = resp.status_code
        self.is_chunked = resp.is_chunked

    async def read_text(self) -> str:
        return await self._resp.read_text()

    def chunks(self) -> AsyncIterator[Chunk]:
        return self._resp.chunks_iter()


@dataclass
class StaticOpener:
    """
    可调用的 opener：每次调用消耗一个预设响应，并记录打开/关闭次数。

    说明：
    - 响应序列耗尽后重复使用最后一个（便于“重新迭代 = 重新请求”的回归）。
    """

    responses: List[StaticChunkedResponse]
    opened: int = 0
    released: int = 0

    def __call__(self):  # type: ignore[no-untyped-def]
        return self._open()

    @asynccontextmanager
    async def _open(self) -> AsyncIterator[ChunkedResponse]:
        idx = min(self.opened, len(self.responses) - 1)
        self.opened += 1
        resp = self.responses[idx]
        try:
            yield _Adapter(resp)
        finally:
            resp.closed = True
            self.released += 1


def static_opener(*responses: StaticChunkedResponse) -> StaticOpener:
    """构造一个按顺序返回预设响应的 opener。"""

    if not responses:
        raise ValueError("static_opener requires at least one response")
    return StaticOpener(responses=list(responses))


def ndjson_chunks(*chunks: ChunkLike, status_code: int = 200) -> StaticChunkedResponse:
    """便捷函数：chunked NDJSON 响应。"""

    return StaticChunkedResponse(status_code=status_code, chunks=list(chunks))


def single_body(body: ChunkLike, *, status_code: int = 200) -> StaticChunkedResponse:
    """便捷函数：非 chunked 的完整 body 响应。"""

    return StaticChunkedResponse(status_code=status_code, body=body)


__all__ = [
    "StaticChunkedResponse",
    "StaticOpener",
    "ndjson_chunks",
    "single_body",
    "static_opener",
]
