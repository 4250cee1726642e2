"""
Line Transformer：解码前对单行做纯函数改写。

约束：
- 签名固定为 `line -> line`；
- 不得抛异常：最坏情况原样返回。
"""

from __future__ import annotations

from typing import Callable

LineTransform = Callable[[str], str]

SSE_DATA_PREFIX = "data: "
SSE_DONE_SENTINEL = "[DONE]"


def identity_line(line: str) -> str:
    """默认 transformer：不做任何改写。"""

    return line


def strip_prefix(prefix: str) -> LineTransform:
    """
    构造一个“去掉固定字面量前缀”的 transformer。

    说明：
    - 仅当行以 `prefix` 开头时去掉前缀，其它行原样返回；
    - 非 str 输入原样返回（不抛异常）。
    """

    def _strip(line: str) -> str:
        if isinstance(line, str) and prefix and line.startswith(prefix):
            return line[len(prefix) :]
        return line

    return _strip


sse_data_line: LineTransform = strip_prefix(SSE_DATA_PREFIX)
"""event-stream 风格端点：去掉 `data: ` 前缀。"""


def sse_event_line(line: str) -> str:
    """去掉 `data: ` 前缀；`[DONE]` 结束哨兵改写为空行（解码时跳过）。"""

    data = sse_data_line(line)
    if isinstance(data, str) and data.strip() == SSE_DONE_SENTINEL:
        return ""
    return data


__all__ = [
    "LineTransform",
    "SSE_DATA_PREFIX",
    "SSE_DONE_SENTINEL",
    "identity_line",
    "sse_data_line",
    "sse_event_line",
    "strip_prefix",
]
