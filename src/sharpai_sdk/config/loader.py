"""
配置加载器（YAML）。

设计目标：
- 支持加载多个 YAML，并按顺序做深度合并（后者覆盖前者）；
- 使用 pydantic 做 schema 校验；默认拒绝未知字段（避免拼写错误被静默吞掉）。

示例：

    endpoint: "http://localhost:8000"
    timeout_ms: 300000
    log_requests: false
    log_responses: false
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_TIMEOUT_MS = 300_000


def _deep_merge(base: MutableMapping[str, Any], overlay: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """
    深度合并两个 dict（overlay 覆盖 base）。

    合并规则：
    - dict + dict：递归合并
    - 其它类型（含 list）：overlay 直接覆盖
    """

    for key, overlay_value in overlay.items():
        if key in base and isinstance(base[key], dict) and isinstance(overlay_value, Mapping):
            _deep_merge(base[key], overlay_value)  # type: ignore[arg-type]
            continue
        base[key] = deepcopy(overlay_value)
    return base


class SdkConfig(BaseModel):
    """SDK 配置根对象。"""

    model_config = ConfigDict(extra="forbid")

    endpoint: str
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, ge=1)
    log_requests: bool = False
    log_responses: bool = False

    @field_validator("endpoint")
    @classmethod
    def _normalize_endpoint(cls, value: str) -> str:
        """去掉首尾空白与末尾 `/`；空值拒绝。"""

        s = str(value or "").strip().rstrip("/")
        if not s:
            raise ValueError("endpoint must be a non-empty URL")
        return s

    @property
    def timeout_sec(self) -> float:
        return self.timeout_ms / 1000.0


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """读取 YAML 文件为 dict；空文件返回空 dict。"""

    if not path.exists():
        raise FileNotFoundError(f"配置文件不存在：{path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"配置文件根节点必须为 mapping(dict)：{path}")
    return data


def load_config_dicts(config_dicts: list[Dict[str, Any]]) -> SdkConfig:
    """
    加载并合并多个 dict 配置，返回校验后的 `SdkConfig`。

    参数：
    - config_dicts：按顺序做深度合并（后者覆盖前者）
    """

    merged: Dict[str, Any] = {}
    for overlay in config_dicts:
        if not overlay:
            continue
        _deep_merge(merged, overlay)
    return SdkConfig.model_validate(merged)


def load_config(config_paths: list[Path]) -> SdkConfig:
    """
    加载并合并多个配置文件，返回校验后的 `SdkConfig`。

    参数：
    - config_paths：YAML 路径列表；按顺序合并（后者覆盖前者）
    """

    overlays: list[Dict[str, Any]] = []
    for path in config_paths:
        overlays.append(_load_yaml_file(Path(path)))
    return load_config_dicts(overlays)


__all__ = ["DEFAULT_TIMEOUT_MS", "SdkConfig", "load_config", "load_config_dicts"]
