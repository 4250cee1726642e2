from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Tuple

import httpx
import pytest

from sharpai_sdk.core.errors import ResponseDecodeError
from sharpai_sdk.http import HttpTransport
from sharpai_sdk.models.pull import PullModelProgress
from sharpai_sdk.stream.driver import StreamOutcome


def _chunked(*parts: bytes, status_code: int = 200) -> httpx.Response:
    async def _gen():  # type: ignore[no-untyped-def]
        for p in parts:
            yield p

    return httpx.Response(status_code, content=_gen())


def _transport(
    handler: Any, *, log_requests: bool = False, log_responses: bool = False
) -> Tuple[HttpTransport, List[Tuple[str, str]]]:
    logs: List[Tuple[str, str]] = []
    http = HttpTransport(
        "http://example.test/",
        timeout_ms=1500,
        log_requests=log_requests,
        log_responses=log_responses,
        sink=lambda lvl, msg: logs.append((lvl, msg)),
        transport=httpx.MockTransport(handler),
    )
    return http, logs


def test_post_json_sends_json_and_decodes_record() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "success"})

    http, logs = _transport(handler, log_requests=True)
    url = http.url("/api/pull")
    out = asyncio.run(http.post_json(url, {"model": "llama3"}, PullModelProgress))

    assert isinstance(out, PullModelProgress)
    assert out.is_complete() is True
    assert url == "http://example.test/api/pull"
    assert seen[0].method == "POST"
    assert seen[0].headers["content-type"] == "application/json"
    assert json.loads(seen[0].content) == {"model": "llama3"}
    assert ("DEBUG", f"POST request to {url} with {len(seen[0].content)} bytes") in logs


def test_post_json_non_success_returns_none_and_warns() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    http, logs = _transport(handler)
    out = asyncio.run(http.post_json(http.url("/x"), {"a": 1}, Dict[str, Any]))

    assert out is None
    assert any(lvl == "WARN" and "Non-success from http://example.test/x: 500" in msg for lvl, msg in logs)


def test_post_json_empty_body_returns_none() -> None:
    http, _logs = _transport(lambda request: httpx.Response(200, content=b""))
    assert asyncio.run(http.post_json(http.url("/x"), {"a": 1}, Dict[str, Any])) is None


def test_post_json_undecodable_success_body_raises() -> None:
    http, _logs = _transport(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(ResponseDecodeError) as ei:
        asyncio.run(http.post_json(http.url("/x"), {"a": 1}, Dict[str, Any]))
    assert ei.value.body == "<html>"
    assert str(ei.value).startswith("http://example.test/x: ")


def test_get_raw_and_delete_json() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, text="hello")
        return httpx.Response(200, content=b"")

    http, _logs = _transport(handler)
    assert asyncio.run(http.get_raw(http.url("/a"))) == "hello"
    assert asyncio.run(http.delete_json(http.url("/b"), {"model": "m"}, Any)) is None
    assert seen[1].method == "DELETE"
    assert json.loads(seen[1].content) == {"model": "m"}


def test_read_response_joins_chunked_body() -> None:
    http, _logs = _transport(lambda request: _chunked(b"hel", b"lo"))
    assert asyncio.run(http.post_raw(http.url("/x"), {"a": 1})) == "hello"


def test_post_stream_decodes_chunked_ndjson() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return _chunked(b'{"status":"pulling"}\n{"stat', b'us":"success"}\n')

    http, logs = _transport(handler, log_responses=True)
    stream = http.post_stream(http.url("/api/pull"), {"model": "m"}, PullModelProgress)
    records = asyncio.run(stream.collect())

    assert [r.status for r in records] == ["pulling", "success"]
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.COMPLETED
    assert ("DEBUG", 'Parsed streaming result: {"status":"pulling"}') in logs


def test_post_stream_non_success_yields_nothing() -> None:
    http, _logs = _transport(lambda request: httpx.Response(404, json={"error": "not found"}))
    stream = http.post_stream(http.url("/api/pull"), {"model": "m"}, PullModelProgress)

    assert asyncio.run(stream.collect()) == []
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.EMPTY
    assert stream.last_session.status_code == 404
    assert "not found" in (stream.last_session.diagnostic_body or "")


def test_post_stream_transport_error_propagates() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    http, _logs = _transport(handler)
    stream = http.post_stream(http.url("/api/pull"), {"model": "m"}, PullModelProgress)

    with pytest.raises(httpx.ConnectError):
        asyncio.run(stream.collect())
    assert stream.last_session is not None
    assert stream.last_session.outcome is StreamOutcome.FAILED


def test_argument_validation() -> None:
    http, _logs = _transport(lambda request: httpx.Response(200))
    with pytest.raises(ValueError):
        http.post_stream("", {"a": 1}, Any)
    with pytest.raises(ValueError):
        http.post_stream(http.url("/x"), None, Any)
    with pytest.raises(ValueError):
        asyncio.run(http.post_json(http.url("/x"), None, Any))


def test_client_is_built_with_configured_timeout(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    import sharpai_sdk.http as mod

    captured: Dict[str, Any] = {}
    real_client = httpx.AsyncClient

    def _fake_client(*args: Any, **kwargs: Any) -> httpx.AsyncClient:
        captured.update(kwargs)
        return real_client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))

    monkeypatch.setattr(mod.httpx, "AsyncClient", _fake_client)
    http = HttpTransport("http://example.test", timeout_ms=1500)
    assert asyncio.run(http.get_json(http.url("/x"), Dict[str, Any])) == {}
    assert captured["timeout"].read == 1.5
