from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from sharpai_sdk.config.loader import DEFAULT_TIMEOUT_MS, load_config, load_config_dicts


def test_load_config_dicts_merges_in_order_and_normalizes_endpoint() -> None:
    cfg = load_config_dicts([{"endpoint": "http://a/"}, {}, {"endpoint": " http://b:8000/ ", "log_requests": True}])
    assert cfg.endpoint == "http://b:8000"
    assert cfg.log_requests is True
    assert cfg.timeout_ms == DEFAULT_TIMEOUT_MS
    assert cfg.timeout_sec == 300.0


def test_unknown_field_is_rejected() -> None:
    with pytest.raises(ValidationError):
        load_config_dicts([{"endpoint": "http://a", "timeout": 5}])


def test_empty_endpoint_is_rejected() -> None:
    with pytest.raises(ValidationError):
        load_config_dicts([{"endpoint": " / "}])


def test_load_config_from_yaml_overlays(tmp_path: Path) -> None:
    base = tmp_path / "base.yaml"
    base.write_text("endpoint: http://localhost:8000\ntimeout_ms: 1000\n", encoding="utf-8")
    overlay = tmp_path / "overlay.yaml"
    overlay.write_text("timeout_ms: 2500\n", encoding="utf-8")
    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")

    cfg = load_config([base, overlay, empty])
    assert cfg.endpoint == "http://localhost:8000"
    assert cfg.timeout_ms == 2500


def test_load_config_rejects_missing_file_and_non_mapping_root(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config([tmp_path / "missing.yaml"])
    bad = tmp_path / "bad.yaml"
    bad.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config([bad])
