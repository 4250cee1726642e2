"""
流式响应解码（NDJSON / event-stream 前缀 JSON / 单 body JSON）。

组成（由叶到根）：
- `chunks`：Chunk Source 协议与 httpx 适配
- `lines`：带 leftover buffer 的行切分
- `transforms`：解码前的行改写
- `decoder`：面向任意 shape 的 JSON 行解码
- `driver`：状态机 + 可重复迭代的 `RecordStream`
"""

from __future__ import annotations

from sharpai_sdk.stream.chunks import Chunk, ChunkedResponse, HttpxChunkedResponse, ResponseOpener
from sharpai_sdk.stream.decoder import DecodeResult, RecordDecoder
from sharpai_sdk.stream.driver import RecordStream, StreamOutcome, StreamSession, StreamState
from sharpai_sdk.stream.lines import LineAssembler, split_lines
from sharpai_sdk.stream.sync import collect_sync, iter_records_sync
from sharpai_sdk.stream.transforms import SSE_DATA_PREFIX, identity_line, sse_data_line, sse_event_line, strip_prefix

__all__ = [
    "Chunk",
    "ChunkedResponse",
    "DecodeResult",
    "HttpxChunkedResponse",
    "LineAssembler",
    "RecordDecoder",
    "RecordStream",
    "ResponseOpener",
    "SSE_DATA_PREFIX",
    "StreamOutcome",
    "StreamSession",
    "StreamState",
    "collect_sync",
    "identity_line",
    "iter_records_sync",
    "split_lines",
    "sse_data_line",
    "sse_event_line",
    "strip_prefix",
]
