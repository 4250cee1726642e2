"""
SharpAI SDK（Python）。

说明：
- 面向两类后端：Ollama 风格（`/api/*`）与 OpenAI-compatible（`/v1/*`）；
- 核心为流式响应解码（`sharpai_sdk.stream`）：NDJSON / `data: ` 前缀事件流 / 单 body JSON
  → 惰性产出的 typed record，支持 stop 谓词、协作式取消与确定性连接释放；
- 日志通过注入的 sink 输出（默认 no-op），配置支持 YAML overlay + 环境变量。
"""

from __future__ import annotations

from sharpai_sdk.client import SharpAISdk
from sharpai_sdk.core.errors import (
    ConfigError,
    LlmError,
    ResponseDecodeError,
    SharpAISdkError,
    StreamCancelledError,
)
from sharpai_sdk.observability.log_sink import LogSink, null_log_sink, stdlib_log_sink
from sharpai_sdk.stream.driver import RecordStream, StreamOutcome, StreamSession

__all__ = [
    "ConfigError",
    "LlmError",
    "LogSink",
    "RecordStream",
    "ResponseDecodeError",
    "SharpAISdk",
    "SharpAISdkError",
    "StreamCancelledError",
    "StreamOutcome",
    "StreamSession",
    "__version__",
    "null_log_sink",
    "stdlib_log_sink",
]

__version__ = "0.1.0"
