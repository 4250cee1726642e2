"""OpenAI-compatible API 的请求对象与响应 record。"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from sharpai_sdk.models.common import WireRecord, drop_none, inputs_payload_value, normalize_inputs


# ---- requests ----


@dataclass(frozen=True)
class OpenAIGenerateEmbeddingsRequest:
    """`/v1/embeddings`；input 为单个字符串或字符串列表。"""

    model: str
    input: Union[str, List[str]]
    encoding_format: Optional[str] = None
    dimensions: Optional[int] = None
    user: Optional[str] = None

    def inputs(self) -> List[str]:
        return normalize_inputs(self.input)

    def to_payload(self) -> Dict[str, Any]:
        return drop_none(
            {
                "model": self.model,
                "input": inputs_payload_value(self.inputs()),
                "encoding_format": self.encoding_format,
                "dimensions": self.dimensions,
                "user": self.user,
            }
        )


@dataclass(frozen=True)
class OpenAIGenerateCompletionRequest:
    """`/v1/completions`。"""

    model: str
    prompt: Union[str, List[str]]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    n: Optional[int] = None
    stop: Optional[Union[str, List[str]]] = None
    seed: Optional[int] = None
    stream: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return drop_none(
            {
                "model": self.model,
                "prompt": self.prompt,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "top_p": self.top_p,
                "n": self.n,
                "stop": self.stop,
                "seed": self.seed,
                "stream": bool(self.stream),
            }
        )


@dataclass(frozen=True)
class OpenAIGenerateChatCompletionRequest:
    """`/v1/chat/completions`；messages 为 OpenAI-compatible message list。"""

    model: str
    messages: List[Dict[str, Any]] = field(default_factory=list)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    stop: Optional[Union[str, List[str]]] = None
    response_format: Optional[Dict[str, Any]] = None
    seed: Optional[int] = None
    stream: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return drop_none(
            {
                "model": self.model,
                "messages": list(self.messages),
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "top_p": self.top_p,
                "stop": self.stop,
                "response_format": self.response_format,
                "seed": self.seed,
                "stream": bool(self.stream),
            }
        )


# ---- records ----


class OpenAIEmbedding(WireRecord):
    object: Optional[str] = None
    index: int = 0
    embedding: List[float] = Field(default_factory=list)


class OpenAIGenerateEmbeddingsResult(WireRecord):
    object: Optional[str] = None
    model: Optional[str] = None
    data: List[OpenAIEmbedding] = Field(default_factory=list)
    usage: Optional[Dict[str, Any]] = None


class OpenAICompletionChoice(WireRecord):
    index: int = 0
    text: str = ""
    finish_reason: Optional[str] = None


class OpenAIGenerateCompletionResult(WireRecord):
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[OpenAICompletionChoice] = Field(default_factory=list)
    usage: Optional[Dict[str, Any]] = None


class OpenAIChatMessage(WireRecord):
    role: str = "assistant"
    content: Optional[str] = None


class OpenAIChatChoice(WireRecord):
    index: int = 0
    message: OpenAIChatMessage = Field(default_factory=OpenAIChatMessage)
    finish_reason: Optional[str] = None


class OpenAIGenerateChatCompletionResult(WireRecord):
    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[OpenAIChatChoice] = Field(default_factory=list)
    usage: Optional[Dict[str, Any]] = None


class OpenAIStreamingDelta(WireRecord):
    role: Optional[str] = None
    content: Optional[str] = None


class OpenAIStreamingChoice(WireRecord):
    """
    流式 choice。

    说明：
    - `/v1/completions` 流携带 `text`；`/v1/chat/completions` 流携带 `delta`。
    """

    index: int = 0
    text: Optional[str] = None
    delta: Optional[OpenAIStreamingDelta] = None
    finish_reason: Optional[str] = None


class OpenAIStreamingCompletionResult(WireRecord):
    """一条 `data: {...}` 事件。"""

    id: Optional[str] = None
    object: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    choices: List[OpenAIStreamingChoice] = Field(default_factory=list)

    def text(self) -> str:
        """拼接所有 choice 的增量文本。"""

        parts: List[str] = []
        for choice in self.choices:
            if choice.text:
                parts.append(choice.text)
            elif choice.delta is not None and choice.delta.content:
                parts.append(choice.delta.content)
        return "".join(parts)

    def finish_reason(self) -> Optional[str]:
        for choice in self.choices:
            if choice.finish_reason:
                return choice.finish_reason
        return None


__all__ = [
    "OpenAIChatChoice",
    "OpenAIChatMessage",
    "OpenAICompletionChoice",
    "OpenAIEmbedding",
    "OpenAIGenerateChatCompletionRequest",
    "OpenAIGenerateChatCompletionResult",
    "OpenAIGenerateCompletionRequest",
    "OpenAIGenerateCompletionResult",
    "OpenAIGenerateEmbeddingsRequest",
    "OpenAIGenerateEmbeddingsResult",
    "OpenAIStreamingChoice",
    "OpenAIStreamingCompletionResult",
    "OpenAIStreamingDelta",
]
