"""
Ollama 风格 API 的请求对象与响应 record。

说明：
- 请求：frozen dataclass + `to_payload()`；
- 响应：`WireRecord`（只声明用到的字段，其余保留）。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import Field, model_validator

from sharpai_sdk.models.common import WireRecord, drop_none, inputs_payload_value, normalize_inputs


# ---- requests ----


@dataclass(frozen=True)
class OllamaPullModelRequest:
    """拉取模型。"""

    model: str
    insecure: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        return drop_none({"model": self.model, "insecure": self.insecure})


@dataclass(frozen=True)
class OllamaDeleteModelRequest:
    """删除本地模型。"""

    model: str

    def to_payload(self) -> Dict[str, Any]:
        return {"model": self.model}


@dataclass(frozen=True)
class OllamaGenerateEmbeddingsRequest:
    """
    生成 embeddings。

    字段：
    - input：单个字符串或字符串列表
    - truncate/options/keep_alive：透传给服务端的可选参数
    """

    model: str
    input: Union[str, List[str]]
    truncate: Optional[bool] = None
    options: Optional[Dict[str, Any]] = None
    keep_alive: Optional[str] = None

    def inputs(self) -> List[str]:
        return normalize_inputs(self.input)

    def to_payload(self) -> Dict[str, Any]:
        return drop_none(
            {
                "model": self.model,
                "input": inputs_payload_value(self.inputs()),
                "truncate": self.truncate,
                "options": self.options,
                "keep_alive": self.keep_alive,
            }
        )


@dataclass(frozen=True)
class OllamaGenerateCompletionRequest:
    """文本补全（`/api/generate`）。"""

    model: str
    prompt: str
    system: Optional[str] = None
    template: Optional[str] = None
    format: Optional[Union[str, Dict[str, Any]]] = None
    options: Optional[Dict[str, Any]] = None
    keep_alive: Optional[str] = None
    raw: Optional[bool] = None
    stream: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return drop_none(
            {
                "model": self.model,
                "prompt": self.prompt,
                "system": self.system,
                "template": self.template,
                "format": self.format,
                "options": self.options,
                "keep_alive": self.keep_alive,
                "raw": self.raw,
                "stream": bool(self.stream),
            }
        )


@dataclass(frozen=True)
class OllamaGenerateChatCompletionRequest:
    """对话补全（`/api/chat`）；messages 为 `{"role", "content"}` 列表。"""

    model: str
    messages: List[Dict[str, Any]] = field(default_factory=list)
    format: Optional[Union[str, Dict[str, Any]]] = None
    options: Optional[Dict[str, Any]] = None
    keep_alive: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    stream: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return drop_none(
            {
                "model": self.model,
                "messages": list(self.messages),
                "format": self.format,
                "options": self.options,
                "keep_alive": self.keep_alive,
                "tools": self.tools,
                "stream": bool(self.stream),
            }
        )


# ---- records ----


class OllamaLocalModel(WireRecord):
    """本地已安装模型（`/api/tags` 列表项）。"""

    name: str = ""
    model: Optional[str] = None
    modified_at: Optional[str] = None
    size: Optional[int] = None
    digest: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class OllamaGenerateEmbeddingsResult(WireRecord):
    model: Optional[str] = None
    embeddings: List[List[float]] = Field(default_factory=list)
    total_duration: Optional[int] = None
    load_duration: Optional[int] = None
    prompt_eval_count: Optional[int] = None


class OllamaChatMessage(WireRecord):
    role: str = "assistant"
    content: str = ""


class OllamaGenerateCompletionResult(WireRecord):
    """
    非流式补全结果。

    说明：
    - `/api/generate` 返回 `response`；`/api/chat` 返回 `message`。两者共用此类型。
    """

    model: Optional[str] = None
    created_at: Optional[str] = None
    response: str = ""
    message: Optional[OllamaChatMessage] = None
    done: bool = False
    done_reason: Optional[str] = None
    context: Optional[List[int]] = None
    total_duration: Optional[int] = None
    eval_count: Optional[int] = None

    def text(self) -> str:
        if self.message is not None and self.message.content:
            return self.message.content
        return self.response


class OllamaStreamingCompletionResult(WireRecord):
    """流式补全的一条 NDJSON 记录。"""

    model: Optional[str] = None
    created_at: Optional[str] = None
    response: str = ""
    done: bool = False
    done_reason: Optional[str] = None


class OllamaGenerateChatCompletionChunk(WireRecord):
    """
    流式对话的一条 NDJSON 记录。

    说明：
    - 标准形态带 `message`；部分服务端以补全形态（`response` 字段）返回对话流，
      此时把 `response` 映射为 assistant message。
    """

    model: Optional[str] = None
    created_at: Optional[str] = None
    message: OllamaChatMessage = Field(default_factory=OllamaChatMessage)
    done: bool = False
    done_reason: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _lift_response_into_message(cls, data: Any) -> Any:
        if isinstance(data, dict) and "message" not in data and "response" in data:
            data = dict(data)
            data["message"] = {"role": "assistant", "content": data.get("response") or ""}
        return data


__all__ = [
    "OllamaChatMessage",
    "OllamaDeleteModelRequest",
    "OllamaGenerateChatCompletionChunk",
    "OllamaGenerateChatCompletionRequest",
    "OllamaGenerateCompletionRequest",
    "OllamaGenerateCompletionResult",
    "OllamaGenerateEmbeddingsRequest",
    "OllamaGenerateEmbeddingsResult",
    "OllamaLocalModel",
    "OllamaPullModelRequest",
    "OllamaStreamingCompletionResult",
]
