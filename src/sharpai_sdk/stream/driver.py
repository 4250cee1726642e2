"""
Stream Driver：把（可能 chunked 的）HTTP 响应体变成惰性产出的 typed record 序列。

状态机：

    IDLE → STREAMING → (逐行) DECODING → STREAMING → DRAINING → DONE
                 └→ ERROR（transport 失败/取消）      DECODING └→ STOPPED_EARLY（stop 谓词命中）
    IDLE └→ EMPTY（非 2xx 或空 body）

约束：
- pull 模式：只有调用方请求下一个 record 时才会拉取下一个 chunk（隐式背压），
  未消费的 record 不会被无界缓冲（只缓冲当前 chunk 切出的行）；
- 解码失败只记日志并跳过该行；只有 transport 层失败会作为异常抛给调用方；
- 正常结束（EOF / stop 谓词 / 非 2xx）不抛异常，终态记录在 `StreamSession.outcome`；
- 任一终态（包括调用方提前 `aclose()`）都会确定性地释放底层连接；
- 提前 `break` 只有在 `async with` 内才会立即释放连接；裸 `async for ... break` 要等到
  事件循环回收（或 GC）时才释放，因此推荐写法是 `async with stream as s: async for rec in s:`；
- chunked 响应如果一个字节都没有，终态为 EMPTY（与空的非 chunked body 一致）；
- 会话只能向前消费；`RecordStream` 每次迭代都会发起一次新请求（从头重来）。
"""

from __future__ import annotations

from collections import deque
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any, Callable, Deque, Generic, List, Optional, Protocol, TypeVar

import httpx

from sharpai_sdk.core.errors import StreamCancelledError
from sharpai_sdk.observability.log_sink import LogSink, emit
from sharpai_sdk.stream.chunks import Chunk, ChunkedResponse, ResponseOpener
from sharpai_sdk.stream.decoder import RecordDecoder
from sharpai_sdk.stream.lines import LineAssembler
from sharpai_sdk.stream.transforms import LineTransform, identity_line

T = TypeVar("T")


class StreamState(str, Enum):
    """Stream Driver 的内部状态。"""

    IDLE = "idle"
    STREAMING = "streaming"
    DECODING = "decoding"
    DRAINING = "draining"
    DONE = "done"
    STOPPED_EARLY = "stopped_early"
    ERROR = "error"
    EMPTY = "empty"


class StreamOutcome(str, Enum):
    """一次解码会话的终态（对外）。"""

    COMPLETED = "completed"
    STOPPED_EARLY = "stopped_early"
    FAILED = "failed"
    EMPTY = "empty"


_OUTCOME_BY_STATE = {
    StreamState.DONE: StreamOutcome.COMPLETED,
    StreamState.STOPPED_EARLY: StreamOutcome.STOPPED_EARLY,
    StreamState.ERROR: StreamOutcome.FAILED,
    StreamState.EMPTY: StreamOutcome.EMPTY,
}


class CancelSignal(Protocol):
    """取消信号：`asyncio.Event` / `threading.Event` 均满足。"""

    def is_set(self) -> bool:
        ...


StopPredicate = Callable[[Any], bool]


class StreamSession(Generic[T]):
    """
    单次响应体的解码会话（异步迭代器）。

    说明：
    - 会话独占自己的连接、leftover buffer 与解码状态，不与其它会话共享；
    - 推荐用 `async with` 保证提前退出时释放连接：

        async with stream as s:
            async for rec in s:
                ...
    """

    def __init__(
        self,
        opener: ResponseOpener,
        decoder: RecordDecoder[T],
        *,
        transform: Optional[LineTransform] = None,
        stop_when: Optional[Callable[[T], bool]] = None,
        sink: Optional[LogSink] = None,
        log_responses: bool = False,
        cancel_event: Optional[CancelSignal] = None,
        label: str = "",
    ) -> None:
        self._opener = opener
        self._decoder = decoder
        self._transform = transform or identity_line
        self._stop_when = stop_when
        self._sink = sink
        self._log_responses = bool(log_responses)
        self._cancel_event = cancel_event
        self._cancel_requested = False
        self._label = label or "<response>"

        self._state = StreamState.IDLE
        self._stack: Optional[AsyncExitStack] = None
        self._chunks: Any = None
        self._assembler = LineAssembler()
        self._lines: Deque[str] = deque()
        self._bytes_received = 0

        self.status_code: Optional[int] = None
        self.diagnostic_body: Optional[str] = None
        self.error: Optional[BaseException] = None
        self.records_yielded = 0
        self.decode_failures = 0

    # ---- 对外状态 ----

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def outcome(self) -> Optional[StreamOutcome]:
        """终态；会话尚未结束时为 None。"""

        return _OUTCOME_BY_STATE.get(self._state)

    @property
    def finished(self) -> bool:
        return self._state in _OUTCOME_BY_STATE

    def cancel(self) -> None:
        """请求取消：在下一次拉取 chunk 时生效（协作式）。"""

        self._cancel_requested = True

    # ---- 异步迭代协议 ----

    def __aiter__(self) -> "StreamSession[T]":
        return self

    async def __anext__(self) -> T:
        while True:
            if self._lines:
                record = await self._decode_next()
                if record is None:
                    continue
                self.records_yielded += 1
                if self._stop_when is not None:
                    await self._check_stop(record)
                return record

            if self._state is StreamState.IDLE:
                await self._start()
            elif self._state is StreamState.STREAMING:
                await self._pull()
            elif self._state is StreamState.DRAINING:
                await self._finish(StreamState.DONE)
            else:
                raise StopAsyncIteration

    async def aclose(self) -> None:
        """
        释放会话（幂等）。

        调用方在终态之前放弃消费时，会话记为 FAILED（`error` 为 None）。
        """

        if self.finished:
            return
        emit(self._sink, "DEBUG", f"stream from {self._label} closed before completion")
        await self._finish(StreamState.ERROR)

    async def __aenter__(self) -> "StreamSession[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self.aclose()

    # ---- 状态迁移 ----

    async def _start(self) -> None:
        """IDLE：发送请求并检查状态码，决定进入 STREAMING / DRAINING / EMPTY。"""

        await self._raise_if_cancelled()

        self._stack = AsyncExitStack()
        try:
            resp: ChunkedResponse = await self._stack.enter_async_context(self._opener())
        except BaseException as exc:
            await self._fail(exc)
            raise

        self.status_code = int(resp.status_code)
        if not 200 <= self.status_code <= 299:
            await self._drain_non_success(resp)
            return

        if resp.is_chunked:
            emit(self._sink, "DEBUG", f"reading chunked response from {self._label}")
            self._chunks = resp.chunks()
            self._state = StreamState.STREAMING
            return

        try:
            body = await resp.read_text()
        except BaseException as exc:
            await self._fail(exc)
            raise
        body = body.strip()
        if not body:
            emit(self._sink, "DEBUG", f"empty response body from {self._label}")
            await self._finish(StreamState.EMPTY)
            return
        # 非 chunked：整个 body 作为一个单元解码，不做按行切分
        self._lines.append(body)
        self._state = StreamState.DRAINING

    async def _drain_non_success(self, resp: ChunkedResponse) -> None:
        """非 2xx：读取 body 仅用于诊断日志，不产出任何 record。"""

        body = ""
        try:
            body = await resp.read_text()
        except httpx.HTTPError as exc:
            emit(self._sink, "DEBUG", f"failed to read error body from {self._label}: {exc}")
        self.diagnostic_body = body
        emit(self._sink, "WARN", f"Non-success from {self._label}: {self.status_code}, {len(body)} bytes")
        if body and self._log_responses:
            emit(self._sink, "DEBUG", f"Response from {self._label} (status {self.status_code}): {body}")
        await self._finish(StreamState.EMPTY)

    async def _pull(self) -> None:
        """STREAMING：拉取下一个 chunk（唯一的挂起点），切行后入队。"""

        await self._raise_if_cancelled()

        try:
            chunk: Chunk = await self._chunks.__anext__()
        except StopAsyncIteration:
            # chunk 源没有显式发出 final 标记就结束了：按 final 处理
            chunk = Chunk(data=b"", is_final=True)
        except BaseException as exc:
            await self._fail(exc)
            raise

        self._bytes_received += len(chunk.data)
        self._lines.extend(self._assembler.feed(chunk.data))
        if chunk.is_final:
            self._lines.extend(self._assembler.flush())
            if self._bytes_received == 0:
                emit(self._sink, "DEBUG", f"empty response body from {self._label}")
                await self._finish(StreamState.EMPTY)
                return
            self._state = StreamState.DRAINING

    async def _decode_next(self) -> Optional[T]:
        """
        DECODING：transform + decode 一行。

        说明：
        - 解码失败记日志并返回 None（跳过该行）；
        - transform/decoder 抛出的其它异常进入 ERROR（释放连接）后原样抛出。
        """

        resume = self._state
        self._state = StreamState.DECODING
        line = self._lines.popleft()
        try:
            text = self._transform(line)
            result = self._decoder.decode(text)
        except BaseException as exc:
            await self._fail(exc)
            raise
        self._state = resume

        if result.error is not None:
            self.decode_failures += 1
            emit(self._sink, "DEBUG", f"Failed to parse JSON line: {text}")
            emit(self._sink, "DEBUG", f"JSON error: {result.error}")
            return None
        if result.record is None:
            return None
        if self._log_responses:
            emit(self._sink, "DEBUG", f"Parsed streaming result: {line}")
        return result.record

    async def _check_stop(self, record: T) -> None:
        """stop 谓词命中则进入 STOPPED_EARLY（当前 record 仍会交给调用方）。"""

        try:
            stop = bool(self._stop_when(record))  # type: ignore[misc]
        except BaseException as exc:
            await self._fail(exc)
            raise
        if stop:
            emit(self._sink, "DEBUG", f"stop condition reached for {self._label}")
            await self._finish(StreamState.STOPPED_EARLY)

    async def _raise_if_cancelled(self) -> None:
        cancelled = self._cancel_requested or (self._cancel_event is not None and self._cancel_event.is_set())
        if not cancelled:
            return
        exc = StreamCancelledError(f"stream from {self._label} cancelled")
        emit(self._sink, "DEBUG", str(exc))
        await self._fail(exc)
        raise exc

    async def _fail(self, exc: BaseException) -> None:
        """进入 ERROR：记录异常并释放连接（异常由调用点继续抛出）。"""

        self.error = exc
        if not isinstance(exc, StreamCancelledError):
            emit(self._sink, "WARN", f"stream from {self._label} failed: {type(exc).__name__}: {exc}")
        await self._finish(StreamState.ERROR)

    async def _finish(self, state: StreamState) -> None:
        """进入终态：清空待解码行并释放连接。"""

        self._state = state
        self._lines.clear()
        await self._release()

    async def _release(self) -> None:
        chunks, self._chunks = self._chunks, None
        stack, self._stack = self._stack, None
        try:
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()
        finally:
            if stack is not None:
                await stack.aclose()


class RecordStream(Generic[T]):
    """
    可重复迭代的 record 流。

    说明：
    - 每次 `async for` / `session()` 都会调用 opener 发起一次新请求（从头开始）；
    - 不支持从流中间恢复；
    - `last_session` 指向最近一次迭代创建的会话，便于读取 outcome/status_code；
    - 作为 async context manager 使用时，退出上下文即关闭本次会话（提前 break 也会立即释放连接）：

        async with stream as s:
            async for rec in s:
                break
    """

    def __init__(
        self,
        opener: ResponseOpener,
        shape: Any,
        *,
        transform: Optional[LineTransform] = None,
        stop_when: Optional[Callable[[T], bool]] = None,
        sink: Optional[LogSink] = None,
        log_responses: bool = False,
        cancel_event: Optional[CancelSignal] = None,
        label: str = "",
    ) -> None:
        self._opener = opener
        self._decoder: RecordDecoder[T] = RecordDecoder(shape)
        self._transform = transform
        self._stop_when = stop_when
        self._sink = sink
        self._log_responses = log_responses
        self._cancel_event = cancel_event
        self._label = label
        self.last_session: Optional[StreamSession[T]] = None
        self._entered: List[StreamSession[T]] = []

    def session(self) -> StreamSession[T]:
        """创建一个新会话（尚未发送请求；首次 `__anext__` 时才发送）。"""

        s: StreamSession[T] = StreamSession(
            self._opener,
            self._decoder,
            transform=self._transform,
            stop_when=self._stop_when,
            sink=self._sink,
            log_responses=self._log_responses,
            cancel_event=self._cancel_event,
            label=self._label,
        )
        self.last_session = s
        return s

    def __aiter__(self) -> StreamSession[T]:
        return self.session()

    async def __aenter__(self) -> StreamSession[T]:
        s = self.session()
        self._entered.append(s)
        return s

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        await self._entered.pop().aclose()

    async def collect(self) -> List[T]:
        """消费完整个流并返回全部 record（会话结束后连接已释放）。"""

        async with self.session() as s:
            return [rec async for rec in s]


__all__ = ["CancelSignal", "RecordStream", "StopPredicate", "StreamOutcome", "StreamSession", "StreamState"]
