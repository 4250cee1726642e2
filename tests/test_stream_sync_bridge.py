from __future__ import annotations

import time
from typing import Any, Dict

import httpx
import pytest

from sharpai_sdk.stream.driver import RecordStream, StreamOutcome
from sharpai_sdk.stream.fake import StaticChunkedResponse, ndjson_chunks, static_opener
from sharpai_sdk.stream.sync import collect_sync, iter_records_sync


def test_collect_sync_returns_all_records() -> None:
    stream: RecordStream[Dict[str, Any]] = RecordStream(
        static_opener(ndjson_chunks('{"a":1}\n', '{"a":2}\n')), Dict[str, Any]
    )
    assert collect_sync(stream) == [{"a": 1}, {"a": 2}]


def test_early_break_releases_connection() -> None:
    opener = static_opener(ndjson_chunks(*[f'{{"a":{i}}}\n' for i in range(50)]))
    stream: RecordStream[Dict[str, Any]] = RecordStream(opener, Dict[str, Any])

    it = iter_records_sync(stream)
    assert next(it) == {"a": 0}
    it.close()

    assert opener.released == 1
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.FAILED


def test_worker_exception_is_reraised_in_caller() -> None:
    resp = StaticChunkedResponse(
        chunks=['{"a":1}\n'], raise_at=1, raise_exc=httpx.ReadTimeout("slow"), mark_final=False
    )
    stream: RecordStream[Dict[str, Any]] = RecordStream(static_opener(resp), Dict[str, Any])

    with pytest.raises(httpx.ReadTimeout):
        collect_sync(stream)


def test_worker_pulls_only_when_caller_asks() -> None:
    resp = ndjson_chunks(*[f'{{"a":{i}}}\n' for i in range(40)])
    stream: RecordStream[Dict[str, Any]] = RecordStream(static_opener(resp), Dict[str, Any])

    it = iter_records_sync(stream)
    assert next(it) == {"a": 0}
    time.sleep(0.2)
    assert resp.pulled == 1

    assert next(it) == {"a": 1}
    time.sleep(0.05)
    assert resp.pulled == 2
    it.close()
    assert resp.closed is True
