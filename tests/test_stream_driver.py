from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from sharpai_sdk.core.errors import StreamCancelledError
from sharpai_sdk.models.pull import PullModelProgress
from sharpai_sdk.stream.driver import RecordStream, StreamOutcome, StreamState
from sharpai_sdk.stream.fake import StaticChunkedResponse, ndjson_chunks, single_body, static_opener
from sharpai_sdk.stream.transforms import sse_data_line

Record = Dict[str, Any]


def _collecting_sink() -> Tuple[List[Tuple[str, str]], Any]:
    logs: List[Tuple[str, str]] = []

    def _sink(level: str, message: str) -> None:
        logs.append((level, message))

    return logs, _sink


def _drain(stream: RecordStream[Any]) -> List[Any]:
    async def _run() -> List[Any]:
        return await stream.collect()

    return asyncio.run(_run())


def test_pull_model_progress_stops_on_success_and_releases() -> None:
    resp = ndjson_chunks('{"status":"pulling"}\n{"sta', 'tus":"success"}\n')
    opener = static_opener(resp)
    stream: RecordStream[PullModelProgress] = RecordStream(
        opener, PullModelProgress, stop_when=lambda r: r.is_complete()
    )

    records = _drain(stream)

    assert [r.status for r in records] == ["pulling", "success"]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.STOPPED_EARLY
    assert opener.released == 1
    assert resp.closed is True


def test_records_after_stop_are_not_yielded() -> None:
    resp = ndjson_chunks('{"done":false}\n{"done":true}\n{"done":false}\n')
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any], stop_when=lambda r: r["done"])

    records = _drain(stream)

    assert records == [{"done": False}, {"done": True}]


def test_completed_when_final_chunk_consumed_without_stop() -> None:
    resp = ndjson_chunks('{"a":1}\n', '{"a":2}\n')
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any])

    assert _drain(stream) == [{"a": 1}, {"a": 2}]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.COMPLETED
    assert stream.last_session.state is StreamState.DONE


def test_split_at_every_offset_yields_same_records() -> None:
    body = '{"a":1}\n{"a":2}\n{"a":3}\n'
    for i in range(len(body) + 1):
        resp = ndjson_chunks(body[:i], body[i:])
        stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any])
        assert _drain(stream) == [{"a": 1}, {"a": 2}, {"a": 3}], i


def test_final_chunk_without_trailing_newline_is_flushed() -> None:
    resp = ndjson_chunks('{"a":1}\n{"a":', "2}")
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any])

    assert _drain(stream) == [{"a": 1}, {"a": 2}]


def test_source_ending_without_final_marker_is_treated_as_final() -> None:
    resp = StaticChunkedResponse(chunks=['{"a":1}\n{"a":2}'], mark_final=False)
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any])

    assert _drain(stream) == [{"a": 1}, {"a": 2}]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.COMPLETED


def test_invalid_line_is_logged_and_skipped() -> None:
    logs, sink = _collecting_sink()
    resp = ndjson_chunks('{"a":1}\nnot json\n{"a":2}\n')
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any], sink=sink)

    assert _drain(stream) == [{"a": 1}, {"a": 2}]
    assert stream.last_session is not None
    assert stream.last_session.decode_failures == 1
    assert ("DEBUG", "Failed to parse JSON line: not json") in logs
    assert any(m.startswith("JSON error: ") for _lvl, m in logs)


def test_non_success_status_yields_no_records_and_keeps_body() -> None:
    logs, sink = _collecting_sink()
    resp = ndjson_chunks('{"error":"model not found"}\n', status_code=404)
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any], sink=sink, label="http://x/api/pull")

    assert _drain(stream) == []
    session = stream.last_session
    assert session is not None
    assert session.outcome is StreamOutcome.EMPTY
    assert session.status_code == 404
    assert "model not found" in (session.diagnostic_body or "")
    assert opener.released == 1
    assert any(lvl == "WARN" and "Non-success from http://x/api/pull: 404" in m for lvl, m in logs)


def test_non_chunked_body_is_decoded_as_one_record_after_transform() -> None:
    stream: RecordStream[Record] = RecordStream(
        static_opener(single_body('data: {"text":"hi"}')), Dict[str, Any], transform=sse_data_line
    )

    assert _drain(stream) == [{"text": "hi"}]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.COMPLETED


def test_non_chunked_body_is_not_split_into_lines() -> None:
    stream: RecordStream[Any] = RecordStream(static_opener(single_body('{"a":\n1}')), Any)

    assert _drain(stream) == [{"a": 1}]


def test_empty_body_is_empty_outcome() -> None:
    stream: RecordStream[Record] = RecordStream(static_opener(single_body("  \n")), Dict[str, Any])

    assert _drain(stream) == []
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.EMPTY


def test_transport_error_propagates_and_marks_failed() -> None:
    boom = httpx.ReadError("connection reset")
    resp = StaticChunkedResponse(chunks=['{"a":1}\n', '{"a":2}\n'], raise_at=1, raise_exc=boom)
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any])
    got: List[Record] = []

    async def _run() -> None:
        async for rec in stream:
            got.append(rec)

    with pytest.raises(httpx.ReadError):
        asyncio.run(_run())

    assert got == [{"a": 1}]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.FAILED
    assert stream.last_session.error is boom
    assert opener.released == 1


def test_cancel_event_is_checked_at_next_pull() -> None:
    cancel = threading.Event()
    resp = ndjson_chunks('{"a":1}\n', '{"a":2}\n')
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any], cancel_event=cancel)
    got: List[Record] = []

    async def _run() -> None:
        async for rec in stream:
            got.append(rec)
            cancel.set()

    with pytest.raises(StreamCancelledError):
        asyncio.run(_run())

    assert got == [{"a": 1}]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.FAILED
    assert opener.released == 1


def test_session_cancel_before_start_sends_nothing() -> None:
    opener = static_opener(ndjson_chunks('{"a":1}\n'))
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any])

    async def _run() -> None:
        session = stream.session()
        session.cancel()
        with pytest.raises(StreamCancelledError):
            await session.__anext__()

    asyncio.run(_run())
    assert opener.opened == 0


def test_abandoned_session_releases_connection() -> None:
    resp = ndjson_chunks('{"a":1}\n', '{"a":2}\n', '{"a":3}\n')
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any])

    async def _run() -> None:
        async with stream.session() as s:
            async for _rec in s:
                break

    asyncio.run(_run())
    session = stream.last_session
    assert session is not None
    assert session.outcome is StreamOutcome.FAILED
    assert session.error is None
    assert opener.released == 1
    assert resp.pulled == 1


def test_chunks_are_pulled_lazily() -> None:
    resp = ndjson_chunks('{"a":1}\n', '{"a":2}\n', '{"a":3}\n')
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any])

    async def _run() -> None:
        async with stream.session() as s:
            first = await s.__anext__()
            assert first == {"a": 1}
            assert resp.pulled == 1
            await s.__anext__()
            assert resp.pulled == 2

    asyncio.run(_run())


def test_reiteration_sends_a_new_request() -> None:
    opener = static_opener(ndjson_chunks('{"a":1}\n'))
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any])

    assert _drain(stream) == [{"a": 1}]
    assert _drain(stream) == [{"a": 1}]
    assert opener.opened == 2
    assert opener.released == 2


def test_raising_sink_does_not_affect_decoding() -> None:
    def _bad_sink(level: str, message: str) -> None:
        raise RuntimeError("sink down")

    resp = ndjson_chunks('{"a":1}\nbad\n{"a":2}\n')
    stream: RecordStream[Record] = RecordStream(static_opener(resp), Dict[str, Any], sink=_bad_sink, log_responses=True)

    assert _drain(stream) == [{"a": 1}, {"a": 2}]


def test_break_inside_stream_context_releases_immediately() -> None:
    resp = ndjson_chunks('{"a":1}\n', '{"a":2}\n', '{"a":3}\n')
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any])

    async def _run() -> None:
        async with stream as s:
            async for _rec in s:
                break
        assert opener.released == 1
        assert resp.closed is True
        assert stream.last_session is not None
        assert stream.last_session.outcome is StreamOutcome.FAILED

    asyncio.run(_run())
    assert resp.pulled == 1


def test_stop_record_in_first_chunk_leaves_later_chunks_unread() -> None:
    resp = ndjson_chunks('{"done":false}\n{"done":true}\n', '{"done":false}\n', '{"done":false}\n')
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any], stop_when=lambda r: r["done"])

    assert _drain(stream) == [{"done": False}, {"done": True}]
    assert resp.pulled == 1
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.STOPPED_EARLY
    assert opener.released == 1


def test_raising_transform_marks_failed_and_releases() -> None:
    def _bad_transform(line: str) -> str:
        raise RuntimeError("transform broke")

    resp = ndjson_chunks('{"a":1}\n', '{"a":2}\n')
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any], transform=_bad_transform)

    with pytest.raises(RuntimeError, match="transform broke"):
        _drain(stream)

    session = stream.last_session
    assert session is not None
    assert session.outcome is StreamOutcome.FAILED
    assert isinstance(session.error, RuntimeError)
    assert opener.released == 1


def test_chunked_response_without_bytes_is_empty_outcome() -> None:
    resp = StaticChunkedResponse(chunks=[b""])
    opener = static_opener(resp)
    stream: RecordStream[Record] = RecordStream(opener, Dict[str, Any])

    assert _drain(stream) == []
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.EMPTY
    assert opener.released == 1
