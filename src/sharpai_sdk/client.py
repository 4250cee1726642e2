"""
SDK 入口对象。

用法：

    async with SharpAISdk("http://localhost:8000", logger=stdlib_log_sink()) as sdk:
        models = await sdk.ollama.list_local_models()
        async with sdk.ollama.generate_chat_completion_stream(req) as stream:
            async for chunk in stream:
                print(chunk.message.content, end="")
"""

from __future__ import annotations

from typing import Dict, Optional

import httpx

from sharpai_sdk.api.ollama import OllamaMethods
from sharpai_sdk.api.openai import OpenAIMethods
from sharpai_sdk.config.loader import DEFAULT_TIMEOUT_MS, SdkConfig
from sharpai_sdk.http import HttpTransport
from sharpai_sdk.observability.log_sink import LogSink, emit, null_log_sink


class SharpAISdk:
    """
    SharpAI SDK 客户端。

    参数：
    - endpoint：服务端根地址（必填；末尾 `/` 会被去掉）
    - timeout_ms：单次请求超时（毫秒，默认 5 分钟）
    - log_requests/log_responses：是否输出请求/响应诊断日志
    - logger：日志 sink `(level, message)`；默认不输出
    - transport：可选 httpx transport（测试/代理场景）

    约束：
    - 不持有长连接：每次调用独立创建 httpx client，`aclose()` 只标记关闭状态。
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        log_requests: bool = False,
        log_responses: bool = False,
        logger: Optional[LogSink] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        ep = str(endpoint or "").strip().rstrip("/")
        if not ep:
            raise ValueError("endpoint is required")
        if int(timeout_ms) < 1:
            raise ValueError("timeout_ms must be >= 1")

        self.logger: LogSink = logger or null_log_sink
        self.http = HttpTransport(
            ep,
            timeout_ms=int(timeout_ms),
            log_requests=log_requests,
            log_responses=log_responses,
            sink=self.logger,
            transport=transport,
            headers=headers,
        )
        self.ollama = OllamaMethods(self.http)
        self.openai = OpenAIMethods(self.http)
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: SdkConfig,
        *,
        logger: Optional[LogSink] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "SharpAISdk":
        """由校验后的 `SdkConfig` 构造客户端。"""

        return cls(
            config.endpoint,
            timeout_ms=config.timeout_ms,
            log_requests=config.log_requests,
            log_responses=config.log_responses,
            logger=logger,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self.http.endpoint

    @property
    def timeout_ms(self) -> int:
        return self.http.timeout_ms

    @property
    def closed(self) -> bool:
        return self._closed

    def log(self, level: str, message: str) -> None:
        """通过注入的 sink 输出一条日志（sink 异常不影响调用方）。"""

        emit(self.logger, level, message)

    async def aclose(self) -> None:
        """关闭客户端（幂等）。"""

        self._closed = True

    async def __aenter__(self) -> "SharpAISdk":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()


__all__ = ["SharpAISdk"]
