"""
SharpAI SDK CLI（models/ollama/openai）。

约束：
- 使用 argparse（不引入第三方 CLI 依赖）；
- stdout 输出机器可读 JSON：单次调用输出一个 JSON 文档，流式调用每个 record 一行；
- 失败时也输出 JSON（`{"error": {...}}`），并返回非 0 exit code（不直接 sys.exit）。
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel

from sharpai_sdk.api.ollama import PATH_DELETE
from sharpai_sdk.bootstrap import resolve_config
from sharpai_sdk.client import SharpAISdk
from sharpai_sdk.core.errors import ConfigError, ResponseDecodeError
from sharpai_sdk.http import encode_body
from sharpai_sdk.models.ollama import (
    OllamaDeleteModelRequest,
    OllamaGenerateChatCompletionRequest,
    OllamaGenerateCompletionRequest,
    OllamaGenerateEmbeddingsRequest,
    OllamaPullModelRequest,
)
from sharpai_sdk.models.openai import (
    OpenAIGenerateChatCompletionRequest,
    OpenAIGenerateCompletionRequest,
    OpenAIGenerateEmbeddingsRequest,
)
from sharpai_sdk.observability.log_sink import LogSink, stdlib_log_sink
from sharpai_sdk.stream.driver import RecordStream, StreamOutcome
from sharpai_sdk.stream.sync import iter_records_sync

EXIT_OK = 0
EXIT_CONFIG = 10
EXIT_TRANSPORT = 20
EXIT_DECODE = 21
EXIT_NO_RESULT = 22


def _to_jsonable(obj: Any) -> Any:
    """把 record / record 列表转换为可 JSON dumps 的对象。"""

    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", exclude_none=True)
    if isinstance(obj, list):
        return [_to_jsonable(x) for x in obj]
    return obj


def _dump_json_to_stdout(obj: Any, *, pretty: bool) -> None:
    """
    将对象输出为 JSON 到 stdout（末尾包含换行）。

    参数：
    - obj：待输出对象（record 会先转为 dict）
    - pretty：是否启用 pretty-print（indent=2）
    """

    data = _to_jsonable(obj)
    if pretty:
        text = json.dumps(data, ensure_ascii=False, indent=2, default=str)
    else:
        text = json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)
    print(text, flush=True)


def _dump_error(kind: str, message: str, *, pretty: bool, details: Optional[Dict[str, Any]] = None) -> None:
    payload: Dict[str, Any] = {"kind": kind, "message": message}
    if details:
        payload["details"] = details
    _dump_json_to_stdout({"error": payload}, pretty=pretty)


def _build_parser() -> argparse.ArgumentParser:
    """构建 CLI argparse parser。"""

    parser = argparse.ArgumentParser(
        prog="sharpai",
        description="SharpAI SDK CLI（models/ollama/openai）。",
    )
    root_sub = parser.add_subparsers(dest="command", required=True)

    def _add_common_flags(p: argparse.ArgumentParser) -> None:
        """为子命令添加公共 flags。"""

        p.add_argument("--endpoint", default=None, help="Server endpoint (overrides config/env).")
        p.add_argument("--timeout-ms", type=int, default=None, help="Request timeout in milliseconds.")
        p.add_argument("--config", action="append", default=[], help="Overlay config YAML path (repeatable).")
        p.add_argument("--env-file", default=None, help="Load SHARPAI_* variables from a .env file.")
        p.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
        p.add_argument("--debug", action="store_true", help="Log SDK diagnostics to stderr.")

    models = root_sub.add_parser("models", help="Local model management (Ollama API)")
    models_sub = models.add_subparsers(dest="models_cmd", required=True)

    list_p = models_sub.add_parser("list", help="List local models")
    _add_common_flags(list_p)

    pull_p = models_sub.add_parser("pull", help="Pull a model (streams progress)")
    pull_p.add_argument("model")
    pull_p.add_argument("--insecure", action="store_true", default=None)
    _add_common_flags(pull_p)

    delete_p = models_sub.add_parser("delete", help="Delete a local model")
    delete_p.add_argument("model")
    _add_common_flags(delete_p)

    for backend in ("ollama", "openai"):
        bp = root_sub.add_parser(backend, help=f"{backend} API commands")
        bsub = bp.add_subparsers(dest=f"{backend}_cmd", required=True)

        complete_p = bsub.add_parser("complete", help="Text completion")
        complete_p.add_argument("model")
        complete_p.add_argument("prompt")
        complete_p.add_argument("--stream", action="store_true")
        complete_p.add_argument("--max-tokens", type=int, default=None)
        _add_common_flags(complete_p)

        chat_p = bsub.add_parser("chat", help="Chat completion (single user message)")
        chat_p.add_argument("model")
        chat_p.add_argument("message")
        chat_p.add_argument("--system", default=None, help="Optional system message.")
        chat_p.add_argument("--stream", action="store_true")
        _add_common_flags(chat_p)

        embed_p = bsub.add_parser("embed", help="Generate embeddings")
        embed_p.add_argument("model")
        embed_p.add_argument("inputs", nargs="+")
        _add_common_flags(embed_p)

    return parser


def _messages(message: str, system: Optional[str]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    if system:
        out.append({"role": "system", "content": system})
    out.append({"role": "user", "content": message})
    return out


def _build_sdk(args: argparse.Namespace, *, transport: Optional[httpx.AsyncBaseTransport]) -> SharpAISdk:
    """bootstrap 配置（overlay → .env → env → flags）并构造 SDK。"""

    resolved = resolve_config(
        overlay_paths=[Path(p) for p in (args.config or [])],
        env_file=Path(args.env_file) if args.env_file else None,
        overrides={"endpoint": args.endpoint, "timeout_ms": args.timeout_ms},
    )
    sink: Optional[LogSink] = None
    if args.debug:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
        sink = stdlib_log_sink(logging.getLogger("sharpai_sdk"))
    return SharpAISdk.from_config(resolved.config, logger=sink, transport=transport)


async def _delete_model(sdk: SharpAISdk, model: str) -> Optional[Dict[str, Any]]:
    """删除模型；服务端成功时通常返回空 body，因此按状态码判断结果。"""

    body = encode_body(OllamaDeleteModelRequest(model=model))
    status, _text = await sdk.http.send("DELETE", sdk.http.url(PATH_DELETE), body)
    if not 200 <= status <= 299:
        return None
    return {"model": model, "deleted": True}


def _select(sdk: SharpAISdk, args: argparse.Namespace) -> Any:
    """
    把子命令映射为一次 SDK 调用。

    返回：
    - RecordStream（流式命令）或 coroutine（单次命令）
    """

    if args.command == "models":
        if args.models_cmd == "list":
            return sdk.ollama.list_local_models()
        if args.models_cmd == "pull":
            return sdk.ollama.pull_model(OllamaPullModelRequest(model=args.model, insecure=args.insecure))
        if args.models_cmd == "delete":
            return _delete_model(sdk, args.model)

    if args.command == "ollama":
        cmd = args.ollama_cmd
        if cmd == "complete":
            options = {"num_predict": args.max_tokens} if args.max_tokens is not None else None
            req = OllamaGenerateCompletionRequest(model=args.model, prompt=args.prompt, options=options)
            if args.stream:
                return sdk.ollama.generate_completion_stream(req)
            return sdk.ollama.generate_completion(req)
        if cmd == "chat":
            chat = OllamaGenerateChatCompletionRequest(model=args.model, messages=_messages(args.message, args.system))
            if args.stream:
                return sdk.ollama.generate_chat_completion_stream(chat)
            return sdk.ollama.generate_chat_completion(chat)
        if cmd == "embed":
            emb = OllamaGenerateEmbeddingsRequest(model=args.model, input=list(args.inputs))
            return sdk.ollama.generate_multiple_embeddings(emb)

    if args.command == "openai":
        cmd = args.openai_cmd
        if cmd == "complete":
            oreq = OpenAIGenerateCompletionRequest(model=args.model, prompt=args.prompt, max_tokens=args.max_tokens)
            if args.stream:
                return sdk.openai.generate_completion_stream(oreq)
            return sdk.openai.generate_completion(oreq)
        if cmd == "chat":
            ochat = OpenAIGenerateChatCompletionRequest(model=args.model, messages=_messages(args.message, args.system))
            if args.stream:
                return sdk.openai.generate_chat_completion_stream(ochat)
            return sdk.openai.generate_chat_completion(ochat)
        if cmd == "embed":
            oemb = OpenAIGenerateEmbeddingsRequest(model=args.model, input=list(args.inputs))
            return sdk.openai.generate_multiple_embeddings(oemb)

    raise ValueError(f"unknown command: {args.command}")


def _run_stream(stream: RecordStream[Any], *, pretty: bool) -> int:
    """逐条输出 record；非 2xx（EMPTY 且带状态码）时输出错误 JSON。"""

    for rec in iter_records_sync(stream):
        _dump_json_to_stdout(rec, pretty=pretty)

    session = stream.last_session
    if session is not None and session.outcome is StreamOutcome.EMPTY and session.status_code is not None:
        if not 200 <= session.status_code <= 299:
            _dump_error(
                "http_status",
                f"server returned status {session.status_code}",
                pretty=pretty,
                details={"status_code": session.status_code, "body": session.diagnostic_body or ""},
            )
            return EXIT_NO_RESULT
    return EXIT_OK


def _run_once(call: Any, *, pretty: bool) -> int:
    result = asyncio.run(call)
    if result is None:
        _dump_error("no_result", "server returned no result (non-success status or empty body)", pretty=pretty)
        return EXIT_NO_RESULT
    _dump_json_to_stdout(result, pretty=pretty)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    """
    CLI 入口函数（用于 console_scripts 与测试）。

    参数：
    - argv：命令行参数列表（不含程序名）；为 None 时读取 sys.argv[1:]
    - transport：可选 httpx transport（测试时注入 `httpx.MockTransport`）

    返回：
    - int：exit code（不会直接 sys.exit，便于测试）。
    """

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:
        # argparse：`--help` 为 0，参数错误为 2
        code = getattr(exc, "code", 2)
        if code is None:
            return 2
        return int(code)

    pretty = bool(getattr(args, "pretty", False))
    try:
        sdk = _build_sdk(args, transport=transport)
    except ConfigError as exc:
        _dump_error("config", exc.message, pretty=pretty, details=exc.details)
        return EXIT_CONFIG

    call = _select(sdk, args)
    try:
        if isinstance(call, RecordStream):
            return _run_stream(call, pretty=pretty)
        return _run_once(call, pretty=pretty)
    except ResponseDecodeError as exc:
        _dump_error("decode", str(exc), pretty=pretty)
        return EXIT_DECODE
    except httpx.HTTPError as exc:
        _dump_error("transport", f"{type(exc).__name__}: {exc}", pretty=pretty)
        return EXIT_TRANSPORT


if __name__ == "__main__":
    raise SystemExit(main())
