from __future__ import annotations

import asyncio

import httpx
import pytest

from sharpai_sdk import SharpAISdk
from sharpai_sdk.config.loader import load_config_dicts


def test_endpoint_is_required_and_normalized() -> None:
    with pytest.raises(ValueError):
        SharpAISdk("  ")
    sdk = SharpAISdk("http://localhost:8000/")
    assert sdk.endpoint == "http://localhost:8000"
    assert sdk.timeout_ms == 300000
    assert sdk.http.url("/api/tags") == "http://localhost:8000/api/tags"


def test_from_config_carries_flags() -> None:
    cfg = load_config_dicts([{"endpoint": "http://x/", "timeout_ms": 10, "log_requests": True}])
    sdk = SharpAISdk.from_config(cfg)
    assert sdk.endpoint == "http://x"
    assert sdk.timeout_ms == 10
    assert sdk.http.log_requests is True
    assert sdk.http.log_responses is False


def test_async_context_manager_closes_idempotently() -> None:
    logs = []

    async def _run() -> SharpAISdk:
        async with SharpAISdk(
            "http://x",
            logger=lambda lvl, msg: logs.append((lvl, msg)),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])),
        ) as sdk:
            assert await sdk.ollama.list_local_models() == []
            sdk.log("INFO", "hello")
        await sdk.aclose()
        return sdk

    sdk = asyncio.run(_run())
    assert sdk.closed is True
    assert ("INFO", "hello") in logs
