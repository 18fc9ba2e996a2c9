from __future__ import annotations

from buildgate.core.compare.comparator import compare_measurement
from buildgate.core.telemetry.history import record_gate_run, recent_runs, trend, verdict_counts
from buildgate.db.session import init_db


def test_history_records_and_summarizes(tmp_path):
    sf = init_db(f"sqlite:///{tmp_path / 'history.db'}")
    record_gate_run(sf, project="web", benchmark="build", result=compare_measurement(1000, 1000), git_ref="a1")
    record_gate_run(sf, project="web", benchmark="build", result=compare_measurement(1000, 1150), git_ref="a2")
    run_id = record_gate_run(sf, project="web", benchmark="build", result=compare_measurement(1000, 1300), runs=5, git_ref="a3")
    record_gate_run(sf, project="api", benchmark="build", result=compare_measurement(10, 10))

    assert run_id > 0
    rows = recent_runs(sf, project="web", limit=10)
    assert [r["git_ref"] for r in rows] == ["a3", "a2", "a1"]
    assert rows[0]["verdict"] == "block"
    assert rows[0]["runs"] == 5

    assert verdict_counts(sf) == {"pass": 2, "warning": 1, "block": 1}
    assert verdict_counts(sf, project="api") == {"pass": 1, "warning": 0, "block": 0}

    t = trend(sf, project="web", benchmark="build")
    assert t["count"] == 3
    assert t["worst_ratio"] == 1.3
    assert [p["verdict"] for p in t["points"]] == ["pass", "warning", "block"]


def test_trend_empty(tmp_path):
    sf = init_db(f"sqlite:///{tmp_path / 'empty.db'}")
    assert trend(sf, project="web", benchmark="build")["count"] == 0
    assert recent_runs(sf) == []
