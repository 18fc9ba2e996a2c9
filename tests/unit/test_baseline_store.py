from __future__ import annotations

import json
from dataclasses import FrozenInstanceError

import pytest

from buildgate.core.baseline.store import (
    Baseline,
    BaselineKey,
    JsonFileBaselineStore,
    SqlBaselineStore,
    build_baseline_store,
)
from buildgate.core.config.schema import AppConfig
from buildgate.core.runtime.errors import BaselineNotFound, BaselineStoreError, BuildGateError, InvalidInput
from buildgate.db.models import BaselineRecord
from buildgate.db.session import init_db, session_scope


@pytest.fixture(params=["sql", "json"])
def store(request, tmp_path):
    if request.param == "sql":
        return SqlBaselineStore(init_db(f"sqlite:///{tmp_path / 'baselines.db'}"))
    return JsonFileBaselineStore(tmp_path / "perf" / "baselines.json")


def test_put_get_and_replace_wholesale(store):
    key = BaselineKey("web", "cold-build")
    assert store.get(key) is None

    store.put(Baseline(key=key, duration_ms=1000.0, source="main@abc", host="Linux/x86_64/8c/py3.11.4"))
    first = store.require(key)
    assert first.duration_ms == 1000.0
    assert first.source == "main@abc"
    assert first.recorded_at.tzinfo is not None

    store.put(Baseline(key=key, duration_ms=900.0, source="main@def"))
    second = store.require(key)
    assert second.duration_ms == 900.0
    assert second.source == "main@def"
    assert second.host == ""
    assert len(store.list()) == 1


def test_require_missing_raises(store):
    with pytest.raises(BaselineNotFound) as info:
        store.require(BaselineKey("web", "nope"))
    assert info.value.project == "web"
    assert "web/nope" in str(info.value)


def test_list_filters_by_project_and_delete(store):
    store.put(Baseline(key=BaselineKey("web", "a"), duration_ms=10))
    store.put(Baseline(key=BaselineKey("web", "b"), duration_ms=20))
    store.put(Baseline(key=BaselineKey("api", "a"), duration_ms=30))

    assert [b.key.slug() for b in store.list(project="web")] == ["web/a", "web/b"]
    assert len(store.list()) == 3

    assert store.delete(BaselineKey("web", "a")) is True
    assert store.delete(BaselineKey("web", "a")) is False
    assert [b.key.slug() for b in store.list()] == ["api/a", "web/b"]


@pytest.mark.parametrize("duration", [0, -5, float("nan")])
def test_put_rejects_non_positive(store, duration):
    with pytest.raises(InvalidInput):
        store.put(Baseline(key=BaselineKey("web", "x"), duration_ms=duration))
    assert store.get(BaselineKey("web", "x")) is None


def test_baseline_snapshot_is_frozen():
    baseline = Baseline(key=BaselineKey("web", "x"), duration_ms=5)
    with pytest.raises(FrozenInstanceError):
        baseline.duration_ms = 1  # type: ignore[misc]


@pytest.mark.parametrize("project,benchmark", [("", "x"), ("web", " "), ("a/b", "x")])
def test_invalid_keys(project, benchmark):
    with pytest.raises(InvalidInput):
        BaselineKey(project, benchmark)


def test_key_parse_round_trip():
    assert BaselineKey.parse("web/build") == BaselineKey("web", "build")
    with pytest.raises(InvalidInput):
        BaselineKey.parse("no-slash")


def test_json_store_file_layout(tmp_path):
    path = tmp_path / "baselines.json"
    store = JsonFileBaselineStore(path)
    store.put(Baseline(key=BaselineKey("web", "build"), duration_ms=1500))
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["version"] == 1
    assert doc["baselines"]["web/build"]["duration_ms"] == 1500.0
    assert not list(tmp_path.glob(".baselines-*"))


@pytest.mark.parametrize(
    "content",
    [
        "[1, 2]",
        "{not json",
        '{"baselines": []}',
        '{"baselines": {"no-slash": {"duration_ms": 10}}}',
        '{"baselines": {"web/build": {"source": "main"}}}',
        '{"baselines": {"web/build": {"duration_ms": 10, "recorded_at": "yesterday"}}}',
        '{"baselines": {"web/build": "fast"}}',
    ],
)
def test_json_store_wraps_corrupt_content(tmp_path, content):
    path = tmp_path / "baselines.json"
    path.write_text(content, encoding="utf-8")
    store = JsonFileBaselineStore(path)
    with pytest.raises(BaselineStoreError, match="baseline"):
        store.list()
    assert issubclass(BaselineStoreError, BuildGateError)


def test_build_store_selects_backend(tmp_path):
    cfg = AppConfig.model_validate(
        {
            "baseline": {"backend": "json", "json_path": str(tmp_path / "b.json")},
            "database": {"url": f"sqlite:///{tmp_path / 'x.db'}"},
        }
    )
    assert isinstance(build_baseline_store(cfg), JsonFileBaselineStore)
    cfg.baseline.backend = "sql"
    assert isinstance(build_baseline_store(cfg), SqlBaselineStore)


def test_session_scope_commits_or_rolls_back(tmp_path):
    factory = init_db(f"sqlite:///{tmp_path / 'scope.db'}")
    store = SqlBaselineStore(factory)

    with pytest.raises(RuntimeError):
        with session_scope(factory) as db:
            db.add(BaselineRecord(project="web", benchmark="build", duration_ms=10.0))
            db.flush()
            raise RuntimeError("interrupted")
    assert store.get(BaselineKey("web", "build")) is None

    with session_scope(factory) as db:
        db.add(BaselineRecord(project="web", benchmark="build", duration_ms=10.0))
    assert store.require(BaselineKey("web", "build")).duration_ms == 10.0
