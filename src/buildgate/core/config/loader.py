from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from buildgate.core.config.schema import AppConfig


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    content = yaml.safe_load(path.read_text(encoding="utf-8"))
    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return content


def _env_overrides(merged: dict[str, Any]) -> dict[str, Any]:
    env_environment = os.getenv("BUILDGATE_ENVIRONMENT")
    if env_environment:
        merged["environment"] = env_environment

    env_db = os.getenv("BUILDGATE_DATABASE_URL")
    if env_db:
        merged = _deep_merge(merged, {"database": {"url": env_db}})

    gate: dict[str, Any] = {}
    for env_name, key in (("BUILDGATE_WARN_RATIO", "warn_ratio"), ("BUILDGATE_BLOCK_RATIO", "block_ratio")):
        raw = os.getenv(env_name)
        if raw:
            gate[key] = raw
    if gate:
        merged = _deep_merge(merged, {"gate": gate})
    return merged


def load_app_config(
    defaults_path: str | Path = "config/defaults.yaml",
    instance_path: str | Path | None = None,
) -> AppConfig:
    defaults = _load_yaml(Path(defaults_path))

    explicit_instance = instance_path or os.getenv("BUILDGATE_CONFIG_FILE")
    if explicit_instance and not Path(explicit_instance).exists():
        raise ValueError(f"Config file not found: {explicit_instance}")
    instance = _load_yaml(Path(explicit_instance)) if explicit_instance else {}

    merged = _env_overrides(_deep_merge(defaults, instance))

    try:
        return AppConfig.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid BuildGate configuration: {exc}") from exc
