"""Threshold comparator for build durations.

A new measurement is classified against a stored baseline using two relative
thresholds. Both thresholds are strict: a ratio exactly equal to a threshold
falls into the lower-severity bucket.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from buildgate.core.runtime.errors import InvalidInput

DEFAULT_WARN_RATIO = 1.10
DEFAULT_BLOCK_RATIO = 1.20


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Verdict(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    BLOCK = "block"


@dataclass(frozen=True, slots=True)
class Thresholds:
    warn_ratio: float = DEFAULT_WARN_RATIO
    block_ratio: float = DEFAULT_BLOCK_RATIO

    def __post_init__(self) -> None:
        for name in ("warn_ratio", "block_ratio"):
            value = getattr(self, name)
            if not _is_number(value) or not math.isfinite(value) or value <= 0:
                raise InvalidInput(f"{name} must be a positive finite number, got {value!r}")
        if self.warn_ratio > self.block_ratio:
            raise InvalidInput(f"warn_ratio {self.warn_ratio} must not exceed block_ratio {self.block_ratio}")


DEFAULT_THRESHOLDS = Thresholds()


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    verdict: Verdict
    ratio: float
    baseline_ms: float
    measured_ms: float
    thresholds: Thresholds = DEFAULT_THRESHOLDS

    @property
    def delta_pct(self) -> float:
        return (self.ratio - 1.0) * 100.0

    @property
    def delta_ms(self) -> float:
        return self.measured_ms - self.baseline_ms

    def as_dict(self) -> dict:
        return {
            "verdict": self.verdict.value,
            "ratio": round(self.ratio, 6),
            "baseline_ms": self.baseline_ms,
            "measured_ms": self.measured_ms,
            "delta_ms": round(self.delta_ms, 3),
            "delta_pct": round(self.delta_pct, 3),
            "warn_ratio": self.thresholds.warn_ratio,
            "block_ratio": self.thresholds.block_ratio,
        }


def _validated(name: str, value, *, allow_zero: bool) -> float:
    if value is None:
        raise InvalidInput(f"{name} is missing")
    if not _is_number(value):
        raise InvalidInput(f"{name} must be a number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidInput(f"{name} must be finite, got {value!r}")
    if number < 0 or (number == 0 and not allow_zero):
        bound = "non-negative" if allow_zero else "positive"
        raise InvalidInput(f"{name} must be {bound}, got {value!r}")
    return number


def compare_measurement(baseline_ms, measured_ms, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> ComparisonResult:
    baseline = _validated("baseline_ms", baseline_ms, allow_zero=False)
    measured = _validated("measured_ms", measured_ms, allow_zero=True)
    ratio = measured / baseline
    if not math.isfinite(ratio):
        raise InvalidInput(f"baseline_ms {baseline!r} is too small to compare against {measured!r}")

    # Compared against the scaled baseline so that measured == ratio * baseline
    # lands exactly on the boundary.
    if measured > baseline * thresholds.block_ratio:
        verdict = Verdict.BLOCK
    elif measured > baseline * thresholds.warn_ratio:
        verdict = Verdict.WARNING
    else:
        verdict = Verdict.PASS

    return ComparisonResult(
        verdict=verdict,
        ratio=ratio,
        baseline_ms=baseline,
        measured_ms=measured,
        thresholds=thresholds,
    )
