"""
wire 模型的公共基类与小工具。

说明：
- 响应 record 只声明 SDK 实际用到的字段，其余字段保留在 `model_extra`（`extra="allow"`）；
- 请求对象是 frozen dataclass，通过 `to_payload()` 生成 JSON body（值为 None 的可选字段不发送）。
"""

from __future__ import annotations

from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict


class WireRecord(BaseModel):
    """服务端返回的 JSON 对象（宽松：未知字段保留，不报错）。"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


def drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
    """去掉值为 None 的键（保序）。"""

    return {k: v for k, v in payload.items() if v is not None}


def normalize_inputs(value: Union[str, List[str], None]) -> List[str]:
    """把 `input` 规范化为字符串列表（None → 空列表）。"""

    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def inputs_payload_value(inputs: List[str]) -> Union[str, List[str]]:
    """
    embeddings 请求的 `input` 取值。

    规则：
    - 多于一个输入：发送数组；
    - 恰好一个输入：发送单个字符串（兼容只接受字符串的服务端）。
    """

    if len(inputs) == 1:
        return inputs[0]
    return list(inputs)


__all__ = ["WireRecord", "drop_none", "inputs_payload_value", "normalize_inputs"]
