"""
Bootstrap（配置发现/来源追踪）。

设计目标：
- 保持 SDK 核心无隐式 I/O：`SharpAISdk` 不会自动读取 `.env` / 自动发现 overlays；
- 提供可选入口：CLI/脚本可复用，得到“有效配置 + 每个字段的来源”。

优先级（低 → 高）：YAML overlays < `.env` < 进程环境变量 < 显式参数。
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import ValidationError

from sharpai_sdk.config.loader import SdkConfig, _deep_merge
from sharpai_sdk.core.errors import ConfigError

ENV_ENDPOINT = "SHARPAI_ENDPOINT"
ENV_TIMEOUT_MS = "SHARPAI_TIMEOUT_MS"
ENV_LOG_REQUESTS = "SHARPAI_LOG_REQUESTS"
ENV_LOG_RESPONSES = "SHARPAI_LOG_RESPONSES"
ENV_CONFIG_PATHS = "SHARPAI_CONFIG_PATHS"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _get_env_nonempty(key: str, *, env: Mapping[str, str]) -> Optional[str]:
    """读取 env 并返回非空白字符串（否则视为未设置）。"""

    v = env.get(key)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _split_paths(raw: str) -> list[str]:
    """将逗号/分号分隔的路径串切分为片段列表（保序，去空项）。"""

    parts: list[str] = []
    for chunk in raw.replace(";", ",").split(","):
        s = chunk.strip()
        if s:
            parts.append(s)
    return parts


def _parse_env_text(text: str) -> Dict[str, str]:
    """解析 `.env` 风格文本为键值字典（best-effort）。

    支持的最小语法：
    - 忽略空行与 `#` 注释行
    - 可选前缀 `export `
    - `KEY=VALUE`，并去掉 VALUE 两侧的单/双引号
    """

    out: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            continue
        if len(v) >= 2 and v[0] == v[-1] and v[0] in ("'", '"'):
            v = v[1:-1]
        out[k] = v
    return out


def _parse_bool(key: str, raw: str) -> bool:
    s = raw.strip().lower()
    if s in _TRUE:
        return True
    if s in _FALSE:
        return False
    raise ConfigError(f"{key} must be a boolean (got {raw!r})", details={"env": key})


def _env_overlay(env: Mapping[str, str]) -> Dict[str, Any]:
    """把 `SHARPAI_*` 环境变量翻译为配置 overlay。"""

    overlay: Dict[str, Any] = {}
    endpoint = _get_env_nonempty(ENV_ENDPOINT, env=env)
    if endpoint:
        overlay["endpoint"] = endpoint
    timeout = _get_env_nonempty(ENV_TIMEOUT_MS, env=env)
    if timeout:
        try:
            overlay["timeout_ms"] = int(timeout)
        except ValueError as exc:
            raise ConfigError(f"{ENV_TIMEOUT_MS} must be an integer (got {timeout!r})", details={"env": ENV_TIMEOUT_MS}) from exc
    for key, field in ((ENV_LOG_REQUESTS, "log_requests"), (ENV_LOG_RESPONSES, "log_responses")):
        raw = _get_env_nonempty(key, env=env)
        if raw:
            overlay[field] = _parse_bool(key, raw)
    return overlay


def _load_yaml_mapping(path: Path) -> Dict[str, Any]:
    """读取 YAML 文件并确保根节点是 mapping(dict)。"""

    if not path.exists():
        raise ConfigError(f"overlay config not found: {path}", details={"path": str(path)})
    try:
        obj = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"overlay config is not valid YAML: {path}", details={"path": str(path), "reason": str(exc)}) from exc
    if not isinstance(obj, dict):
        raise ConfigError(f"overlay config root must be a mapping(dict): {path}", details={"path": str(path)})
    return obj


def _record_sources(overlay: Mapping[str, Any], *, sources: Dict[str, str], label: str) -> None:
    for key in overlay:
        sources[str(key)] = label


@dataclass(frozen=True)
class ResolvedConfig:
    """
    bootstrap 解析结果。

    字段：
    - config：校验后的 `SdkConfig`
    - overlay_paths：参与合并的 YAML 路径（字符串化）
    - env_file：实际加载的 `.env` 路径（若无则为 None）
    - sources：字段来源（例如 `endpoint -> env:SHARPAI_ENDPOINT`）
    """

    config: SdkConfig
    overlay_paths: list[str]
    env_file: Optional[str]
    sources: Dict[str, str]


def resolve_config(
    *,
    overlay_paths: Optional[list[Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    env_file: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ResolvedConfig:
    """
    解析有效配置，并返回来源追踪。

    参数：
    - overlay_paths：显式 YAML overlays（在 `SHARPAI_CONFIG_PATHS` 之后合并）
    - env：环境变量映射（默认 `os.environ`；本函数不修改它）
    - env_file：`.env` 文件路径（可选；不存在则报错）
    - overrides：显式参数（最高优先级，例如 CLI 的 `--endpoint`）

    异常：
    - ConfigError：文件缺失、YAML 非法、字段校验失败
    """

    base_env: Mapping[str, str] = env if env is not None else os.environ
    merged: Dict[str, Any] = {}
    sources: Dict[str, str] = {}

    paths: list[Path] = []
    raw_paths = _get_env_nonempty(ENV_CONFIG_PATHS, env=base_env) or ""
    paths.extend(Path(p).expanduser() for p in _split_paths(raw_paths))
    paths.extend(Path(p).expanduser() for p in (overlay_paths or []))

    for p in paths:
        overlay = _load_yaml_mapping(p)
        _deep_merge(merged, overlay)
        _record_sources(overlay, sources=sources, label=f"overlay:{p}")

    env_file_used: Optional[str] = None
    if env_file is not None:
        ef = Path(env_file).expanduser()
        if not ef.exists():
            raise ConfigError(f"env file not found: {ef}", details={"path": str(ef)})
        dotenv = _parse_env_text(ef.read_text(encoding="utf-8"))
        dotenv_overlay = _env_overlay(dotenv)
        _deep_merge(merged, dotenv_overlay)
        _record_sources(dotenv_overlay, sources=sources, label=f"dotenv:{ef}")
        env_file_used = str(ef)

    env_overlay = _env_overlay(base_env)
    _deep_merge(merged, env_overlay)
    _record_sources(env_overlay, sources=sources, label="env")

    explicit = {k: v for k, v in (overrides or {}).items() if v is not None}
    _deep_merge(merged, explicit)
    _record_sources(explicit, sources=sources, label="explicit")

    try:
        cfg = SdkConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"invalid SDK config: {exc.error_count()} error(s)", details={"errors": exc.errors(include_url=False)}) from exc

    return ResolvedConfig(
        config=cfg,
        overlay_paths=[str(p) for p in paths],
        env_file=env_file_used,
        sources=sources,
    )


__all__ = [
    "ENV_CONFIG_PATHS",
    "ENV_ENDPOINT",
    "ENV_LOG_REQUESTS",
    "ENV_LOG_RESPONSES",
    "ENV_TIMEOUT_MS",
    "ResolvedConfig",
    "resolve_config",
]
