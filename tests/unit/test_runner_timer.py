from __future__ import annotations

import sys

import pytest

from buildgate.core.runner.timer import MeasurementSummary, measure_build, time_build
from buildgate.core.runtime.errors import InvalidInput, MeasurementError


def test_time_build_measures_successful_command():
    m = time_build([sys.executable, "-c", "import time; time.sleep(0.05)"], timeout_seconds=30)
    assert m.returncode == 0
    assert m.duration_ms >= 40
    assert m.command[0] == sys.executable


def test_time_build_failing_command_raises():
    with pytest.raises(MeasurementError) as info:
        time_build([sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)"])
    assert "status 3" in str(info.value)
    assert "boom" in str(info.value)


def test_time_build_timeout_raises():
    with pytest.raises(MeasurementError) as info:
        time_build([sys.executable, "-c", "import time; time.sleep(5)"], timeout_seconds=1)
    assert "timed out" in str(info.value)


def test_time_build_missing_executable_raises():
    with pytest.raises(MeasurementError):
        time_build(["definitely-not-a-real-build-tool-xyz"])


def test_time_build_empty_command():
    with pytest.raises(InvalidInput):
        time_build([])


def test_time_build_passes_env_and_cwd(tmp_path):
    script = "import os, pathlib; assert os.environ['BG_FLAG'] == '1'; assert pathlib.Path('marker').exists()"
    (tmp_path / "marker").write_text("x", encoding="utf-8")
    m = time_build([sys.executable, "-c", script], cwd=str(tmp_path), env={"BG_FLAG": "1"})
    assert m.returncode == 0


def test_measure_build_collects_samples(monkeypatch):
    durations = iter([5.0, 30.0, 10.0, 20.0])

    class FakeMeasurement:
        def __init__(self, duration_ms):
            self.duration_ms = duration_ms

    monkeypatch.setattr(
        "buildgate.core.runner.timer.time_build",
        lambda command, **kwargs: FakeMeasurement(next(durations)),
    )
    summary = measure_build(["make"], runs=3, warmup_runs=1)
    assert summary.warmup_samples_ms == [5.0]
    assert summary.samples_ms == [30.0, 10.0, 20.0]
    assert summary.median_ms == 20.0
    assert summary.min_ms == 10.0
    assert summary.max_ms == 30.0
    assert summary.as_dict()["runs"] == 3


@pytest.mark.parametrize("runs,warmup", [(0, 0), (1, -1)])
def test_measure_build_rejects_bad_counts(runs, warmup):
    with pytest.raises(InvalidInput):
        measure_build(["make"], runs=runs, warmup_runs=warmup)


def test_single_sample_has_zero_stdev():
    assert MeasurementSummary(samples_ms=[12.0]).stdev_ms == 0.0
