from __future__ import annotations

import os
import statistics
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter

from buildgate.core.runtime.errors import InvalidInput, MeasurementError
from buildgate.core.telemetry.logging import get_logger

logger = get_logger("buildgate.runner")


@dataclass(slots=True)
class Measurement:
    duration_ms: float
    command: list[str]
    returncode: int
    started_at: datetime


@dataclass(slots=True)
class MeasurementSummary:
    samples_ms: list[float]
    warmup_samples_ms: list[float] = field(default_factory=list)

    @property
    def median_ms(self) -> float:
        return float(statistics.median(self.samples_ms))

    @property
    def mean_ms(self) -> float:
        return float(statistics.fmean(self.samples_ms))

    @property
    def min_ms(self) -> float:
        return min(self.samples_ms)

    @property
    def max_ms(self) -> float:
        return max(self.samples_ms)

    @property
    def stdev_ms(self) -> float:
        if len(self.samples_ms) < 2:
            return 0.0
        return float(statistics.stdev(self.samples_ms))

    def as_dict(self) -> dict:
        return {
            "runs": len(self.samples_ms),
            "median_ms": round(self.median_ms, 3),
            "mean_ms": round(self.mean_ms, 3),
            "min_ms": round(self.min_ms, 3),
            "max_ms": round(self.max_ms, 3),
            "stdev_ms": round(self.stdev_ms, 3),
        }


def _tail(text: str | None, limit: int = 400) -> str:
    if not text:
        return ""
    return text.strip()[-limit:]


def time_build(
    command: Sequence[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout_seconds: int = 1800,
) -> Measurement:
    """Run ``command`` to completion and return its wall-clock duration."""
    argv = [str(part) for part in command]
    if not argv:
        raise InvalidInput("build command is empty")

    run_env = None
    if env:
        run_env = {**os.environ, **env}

    started_at = datetime.now(timezone.utc)
    started = perf_counter()
    try:
        proc = subprocess.run(
            argv,
            cwd=cwd,
            env=run_env,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise MeasurementError(f"build timed out after {timeout_seconds}s: {' '.join(argv)}") from exc
    except OSError as exc:
        raise MeasurementError(f"build could not start: {exc}") from exc
    duration_ms = (perf_counter() - started) * 1000.0

    if proc.returncode != 0:
        raise MeasurementError(
            f"build exited with status {proc.returncode}: {' '.join(argv)} stderr={_tail(proc.stderr)!r}"
        )

    logger.info("build_timed", command=argv, duration_ms=round(duration_ms, 3))
    return Measurement(duration_ms=duration_ms, command=argv, returncode=proc.returncode, started_at=started_at)


def measure_build(
    command: Sequence[str],
    *,
    runs: int = 3,
    warmup_runs: int = 0,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout_seconds: int = 1800,
) -> MeasurementSummary:
    if runs < 1:
        raise InvalidInput(f"runs must be at least 1, got {runs}")
    if warmup_runs < 0:
        raise InvalidInput(f"warmup_runs must not be negative, got {warmup_runs}")

    warmups = [
        time_build(command, cwd=cwd, env=env, timeout_seconds=timeout_seconds).duration_ms for _ in range(warmup_runs)
    ]
    samples = [time_build(command, cwd=cwd, env=env, timeout_seconds=timeout_seconds).duration_ms for _ in range(runs)]
    summary = MeasurementSummary(samples_ms=samples, warmup_samples_ms=warmups)
    logger.info("build_measured", command=list(command), warmup_runs=warmup_runs, **summary.as_dict())
    return summary
