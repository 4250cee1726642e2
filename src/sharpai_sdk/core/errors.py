"""
SDK 错误分类（异常类型）。

说明：
- 只覆盖“需要被调用方程序化区分”的失败；
- 流式解码中的单行解析失败不是异常：记录日志后跳过该行（见 `sharpai_sdk.stream.decoder`）；
- 传输层异常（`httpx.HTTPError` / `asyncio.CancelledError`）原样向上传播，不做包装。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SharpAISdkError(Exception):
    """SDK 错误基类（不建议直接抛出）。"""


class ConfigError(SharpAISdkError):
    """配置错误（YAML 结构非法、字段校验失败、缺少 endpoint 等）。"""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        """创建配置错误。

        参数：
        - `message`：可读错误信息
        - `details`：结构化上下文（例如文件路径、字段名）
        """

        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}


class LlmError(SharpAISdkError):
    """后端通信/协议错误（取消、响应体无法解码等）。"""


class StreamCancelledError(LlmError):
    """
    流式会话在拉取 chunk 时观察到取消信号。

    说明：
    - 已交给调用方的 record 不会被撤回；
    - 会话终态为 `FAILED`，底层连接已释放。
    """


class ResponseDecodeError(LlmError):
    """
    单次（非流式）调用的 2xx 响应体无法解码为目标类型。

    与流式解码不同：单次调用只有一条 record，没有“跳过”的余地。
    """

    def __init__(self, message: str, *, url: str, body: Optional[str] = None) -> None:
        """
        参数：
        - `message`：解码失败原因
        - `url`：请求 URL
        - `body`：原始响应体（用于排障；可能很大，调用方自行截断）
        """

        super().__init__(message)
        self.url = url
        self.body = body

    def __str__(self) -> str:
        """返回用于日志的字符串表示。"""

        return f"{self.url}: {self.args[0]}"
