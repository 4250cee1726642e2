"""
同步迭代适配器（脚本/CLI 使用）。

实现方式：
- 在后台线程里 `asyncio.run` 一个解码会话；
- 请求/应答握手：调用方每要一个 record 就投递一个 "next" 令牌，后台会话每个令牌只拉取一个 record，
  因此后台不会领先调用方（没有预读缓冲）；
- 调用方提前结束迭代（break / 生成器被关闭）时投递 "stop" 令牌，后台会话退出 `async with` 并释放连接。
"""

from __future__ import annotations

import asyncio
import queue
import threading
from typing import Any, Iterator, Tuple, TypeVar

from sharpai_sdk.stream.driver import RecordStream

T = TypeVar("T")

_NEXT = "next"
_STOP = "stop"

_RECORD = "record"
_END = "end"
_ERROR = "error"


def iter_records_sync(stream: RecordStream[T]) -> Iterator[T]:
    """
    以阻塞迭代器的形式消费 `RecordStream`。

    参数：
    - stream：待消费的 record 流（每次调用都会发起一次新请求）

    约束：
    - 只有调用方请求下一个 record 时后台才会拉取（与异步会话的背压语义一致）。

    异常：
    - 后台会话抛出的 transport 异常会在调用线程重新抛出
    """

    requests: "queue.Queue[str]" = queue.Queue()
    replies: "queue.Queue[Tuple[str, Any]]" = queue.Queue()

    async def _consume() -> None:
        async with stream as session:
            while True:
                token = await asyncio.to_thread(requests.get)
                if token == _STOP:
                    return
                try:
                    rec = await session.__anext__()
                except StopAsyncIteration:
                    replies.put((_END, None))
                    return
                replies.put((_RECORD, rec))

    def _worker() -> None:
        """后台线程入口：按令牌驱动会话，把 record 或异常交回调用线程。"""

        try:
            asyncio.run(_consume())
        except BaseException as e:
            replies.put((_ERROR, e))

    t = threading.Thread(target=_worker, daemon=True)
    t.start()

    try:
        while True:
            requests.put(_NEXT)
            kind, payload = replies.get()
            if kind == _END:
                return
            if kind == _ERROR:
                raise payload
            yield payload
    finally:
        requests.put(_STOP)
        t.join(timeout=5.0)


def collect_sync(stream: RecordStream[T]) -> list[T]:
    """同步收集整个流。"""

    return list(iter_records_sync(stream))
