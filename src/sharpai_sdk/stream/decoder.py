"""
Record Decoder：把一行 JSON 解码为调用方指定的目标类型。

设计：
- 目标类型（shape）在会话创建时由调用方给出，可以是任何 pydantic `TypeAdapter` 支持的类型：
  `BaseModel` 子类、`dict`、`list[...]`、`Any` 等；Stream Driver 本身与 shape 无关；
- 解码失败不是流失败：返回带错误信息的 `DecodeResult`，由 driver 记录日志并跳过该行；
- 空行（例如被 transform 清空的哨兵行）与 shape 允许 None 时的 JSON `null` 都视为“没有 record”：跳过，但不算解码失败。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")


@dataclass(frozen=True)
class DecodeResult(Generic[T]):
    """
    单行解码结果。

    字段：
    - record：解码得到的 record（失败或 `null` 时为 None）
    - error：失败原因（成功时为 None）
    """

    record: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None


class RecordDecoder(Generic[T]):
    """
    面向单一 shape 的 JSON 行解码器。

    用法：
    - `RecordDecoder(PullModelProgress).decode('{"status":"pulling"}')`
    - `RecordDecoder(dict).decode(line)`
    """

    def __init__(self, shape: Union[Type[T], Any]) -> None:
        self._shape = shape
        self._adapter: TypeAdapter[Any] = TypeAdapter(shape)

    @property
    def shape(self) -> Any:
        return self._shape

    def decode(self, line: str) -> DecodeResult[T]:
        """
        解码一行文本。

        说明：
        - 只捕获“内容不合法”类错误（JSON 语法错误 / schema 校验失败）；其它异常属于编程错误，照常抛出。
        """

        text = (line or "").strip()
        if not text:
            return DecodeResult()
        try:
            value = self._adapter.validate_json(text)
        except ValidationError as exc:
            return DecodeResult(error=_summarize(exc))
        if value is None:
            return DecodeResult()
        return DecodeResult(record=value)

    def decode_value(self, value: Any) -> T:
        """把已解析的 Python 对象校验为目标类型（单次调用场景，失败时抛 `ValidationError`）。"""

        return self._adapter.validate_python(value)


def _summarize(exc: ValidationError) -> str:
    """把 ValidationError 压缩为单行描述（日志用）。"""

    parts = []
    for err in exc.errors()[:3]:
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "")
        msg = str(err.get("msg") or err.get("type") or "invalid")
        parts.append(f"{loc}: {msg}" if loc else msg)
    more = exc.error_count() - len(parts)
    if more > 0:
        parts.append(f"(+{more} more)")
    return "; ".join(parts) or "invalid record"


__all__ = ["DecodeResult", "RecordDecoder"]
