from __future__ import annotations

from sharpai_sdk.models.ollama import OllamaGenerateCompletionRequest, OllamaGenerateEmbeddingsRequest
from sharpai_sdk.models.openai import OpenAIStreamingCompletionResult
from sharpai_sdk.models.pull import PullModelProgress, format_bytes


def test_pull_progress_helpers() -> None:
    p = PullModelProgress(status="downloading", downloaded=1536, percent=0.25)
    assert p.progress_percentage() == 25.0
    assert p.formatted_progress() == "1.50 KB (25.0%)"
    assert p.is_complete() is False
    assert p.has_error() is False

    done = PullModelProgress.model_validate({"status": "Success", "error": None})
    assert done.is_complete() is True
    assert done.formatted_progress() == "Success"
    assert PullModelProgress(error="disk full").has_error() is True


def test_format_bytes() -> None:
    assert format_bytes(0) == "0.00 B"
    assert format_bytes(1024 * 1024 * 3) == "3.00 MB"


def test_request_payload_drops_unset_optionals() -> None:
    req = OllamaGenerateCompletionRequest(model="m", prompt="p", options={"temperature": 0})
    assert req.to_payload() == {"model": "m", "prompt": "p", "options": {"temperature": 0}, "stream": False}
    assert OllamaGenerateEmbeddingsRequest(model="e", input=["only"]).to_payload() == {"model": "e", "input": "only"}


def test_streaming_result_text_prefers_text_then_delta() -> None:
    rec = OpenAIStreamingCompletionResult.model_validate(
        {"choices": [{"text": "a"}, {"delta": {"content": "b"}}, {"delta": {}, "finish_reason": "length"}]}
    )
    assert rec.text() == "ab"
    assert rec.finish_reason() == "length"
