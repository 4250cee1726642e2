"""请求对象与响应 record。"""

from __future__ import annotations

from sharpai_sdk.models.ollama import (
    OllamaChatMessage,
    OllamaDeleteModelRequest,
    OllamaGenerateChatCompletionChunk,
    OllamaGenerateChatCompletionRequest,
    OllamaGenerateCompletionRequest,
    OllamaGenerateCompletionResult,
    OllamaGenerateEmbeddingsRequest,
    OllamaGenerateEmbeddingsResult,
    OllamaLocalModel,
    OllamaPullModelRequest,
    OllamaStreamingCompletionResult,
)
from sharpai_sdk.models.openai import (
    OpenAIGenerateChatCompletionRequest,
    OpenAIGenerateChatCompletionResult,
    OpenAIGenerateCompletionRequest,
    OpenAIGenerateCompletionResult,
    OpenAIGenerateEmbeddingsRequest,
    OpenAIGenerateEmbeddingsResult,
    OpenAIStreamingCompletionResult,
)
from sharpai_sdk.models.pull import PullModelProgress

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
    "OpenAIGenerateChatCompletionRequest",
    "OpenAIGenerateChatCompletionResult",
    "OpenAIGenerateCompletionRequest",
    "OpenAIGenerateCompletionResult",
    "OpenAIGenerateEmbeddingsRequest",
    "OpenAIGenerateEmbeddingsResult",
    "OpenAIStreamingCompletionResult",
    "PullModelProgress",
]
