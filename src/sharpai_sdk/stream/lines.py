"""
Line Assembler：把 chunk 切成完整的文本行。

要点：
- 行分隔符可能落在 chunk 中间的任意位置：最后一个换行之后的字节留在 leftover buffer，
  与下一个 chunk 拼接后再切分；
- 在字节层面切分，再逐行 UTF-8 解码：跨 chunk 的多字节字符不会被截断；
- 空白行（strip 后为空）直接丢弃；
- final chunk 之后调用 `flush()`，把 leftover 作为最后一行输出（若非空）。
"""

from __future__ import annotations

from typing import List


class LineAssembler:
    """带 leftover buffer 的行切分器（单会话独占，不可跨会话共享）。"""

    def __init__(self) -> None:
        self._leftover = b""

    @property
    def leftover(self) -> bytes:
        """尚未遇到换行符的字节（只读视图）。"""

        return self._leftover

    def feed(self, data: bytes) -> List[str]:
        """
        输入一个 chunk，返回其中已完整的行（按出现顺序）。

        参数：
        - data：本次 chunk 的原始字节（可以为空）

        返回：
        - 非空行列表（已 strip，包含去掉 `\\r`）
        """

        if not data:
            return []
        buf = self._leftover + data
        parts = buf.split(b"\n")
        self._leftover = parts.pop()
        return _clean(parts)

    def flush(self) -> List[str]:
        """流结束时输出 leftover（若 strip 后非空），并清空 buffer。"""

        tail = self._leftover
        self._leftover = b""
        return _clean([tail])


def _clean(parts: List[bytes]) -> List[str]:
    out: List[str] = []
    for raw in parts:
        line = raw.decode("utf-8", errors="replace").strip()
        if line:
            out.append(line)
    return out


def split_lines(chunks: List[bytes]) -> List[str]:
    """便捷函数：把一组 chunk 依次喂给同一个 assembler，并在末尾 flush。"""

    assembler = LineAssembler()
    lines: List[str] = []
    for data in chunks:
        lines.extend(assembler.feed(data))
    lines.extend(assembler.flush())
    return lines


__all__ = ["LineAssembler", "split_lines"]
