"""后端方法集合：`OllamaMethods`（`/api/*`）与 `OpenAIMethods`（`/v1/*`）。"""

from __future__ import annotations

from sharpai_sdk.api.ollama import OllamaMethods
from sharpai_sdk.api.openai import OpenAIMethods

__all__ = ["OllamaMethods", "OpenAIMethods"]
