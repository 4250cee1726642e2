"""
日志 sink（注入式旁路日志）。

设计目标：
- 请求/响应/解码诊断通过调用方注入的回调输出，默认 no-op；
- SDK 不配置全局 logging，也不持有进程级可变 logger 状态，会话之间互不影响、可独立测试；
- 需要接入标准库 `logging` 时，用 `stdlib_log_sink(logger)` 桥接。

约束：
- sink 只是旁路：sink 抛出的任何异常都会被吞掉，绝不影响控制流。
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

LogSink = Callable[[str, str], None]
"""`(level, message)`；level 取值 `DEBUG` / `INFO` / `WARN` / `ERROR`。"""

_LEVELS: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def null_log_sink(level: str, message: str) -> None:
    """默认 sink：丢弃所有日志。"""

    _ = level, message


def stdlib_log_sink(logger: Optional[logging.Logger] = None) -> LogSink:
    """
    返回一个把日志转发到标准库 `logging.Logger` 的 sink。

    参数：
    - logger：目标 logger；为 None 时使用 `logging.getLogger("sharpai_sdk")`

    说明：
    - 未知 level 按 INFO 处理。
    """

    target = logger or logging.getLogger("sharpai_sdk")

    def _sink(level: str, message: str) -> None:
        target.log(_LEVELS.get(str(level).upper(), logging.INFO), "%s", message)

    return _sink


def emit(sink: Optional[LogSink], level: str, message: str) -> None:
    """
    向 sink 输出一条日志（fail-open）。

    空消息不输出。
    """

    if sink is None or not message:
        return
    try:
        sink(level, message)
    except Exception:
        # 旁路日志失败不得影响解码流程
        return


__all__ = ["LogSink", "emit", "null_log_sink", "stdlib_log_sink"]
