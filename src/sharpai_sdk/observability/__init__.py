"""旁路日志（注入式 sink）。"""

from __future__ import annotations

from sharpai_sdk.observability.log_sink import LogSink, null_log_sink, stdlib_log_sink

__all__ = ["LogSink", "null_log_sink", "stdlib_log_sink"]
