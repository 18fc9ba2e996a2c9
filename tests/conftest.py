from __future__ import annotations

import pytest
import structlog
import yaml

from buildgate.core.telemetry import logging as bg_logging


def write_config(path, db_url: str, **overrides) -> None:
    base = {
        "database": {"url": db_url},
        "telemetry": {"log_level": "INFO", "json_logs": True},
        "ci": {"annotations": "never"},
    }
    for key, value in overrides.items():
        base[key] = {**base.get(key, {}), **value} if isinstance(value, dict) else value
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(base, f, sort_keys=False)


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    path = tmp_path / "instance.yaml"
    write_config(path, f"sqlite:///{tmp_path / 'gate.db'}")
    monkeypatch.setenv("BUILDGATE_CONFIG_FILE", str(path))
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)
    monkeypatch.delenv("GITHUB_STEP_SUMMARY", raising=False)
    monkeypatch.delenv("BUILDGATE_WARN_RATIO", raising=False)
    monkeypatch.delenv("BUILDGATE_BLOCK_RATIO", raising=False)
    monkeypatch.delenv("BUILDGATE_DATABASE_URL", raising=False)
    return path


@pytest.fixture(autouse=True)
def _reset_structlog():
    # Isolate tests: structlog keeps the stderr stream captured at configure time.
    yield
    structlog.reset_defaults()
    bg_logging._CONFIGURED = False
