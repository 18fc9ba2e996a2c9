from __future__ import annotations

from dataclasses import dataclass

from buildgate.core.ci.annotations import detect_ci_context
from buildgate.core.compare.comparator import ComparisonResult, Thresholds, compare_measurement
from buildgate.core.compare.report import report_result
from buildgate.core.notify.webhook import notify_result
from buildgate.core.telemetry.history import record_gate_run
from buildgate.core.telemetry.logging import get_logger


@dataclass(slots=True)
class GateOutcome:
    result: ComparisonResult
    exit_code: int
    run_id: int | None = None


def run_gate(
    runtime,
    *,
    baseline_ms,
    measured_ms,
    thresholds: Thresholds,
    project: str | None = None,
    benchmark: str | None = None,
    label: str | None = None,
    runs: int = 1,
    git_ref: str = "",
    host: str = "",
    record: bool = True,
    stream=None,
) -> GateOutcome:
    """Compare, report, record and notify. Raises ``InvalidInput`` before any side effect."""
    logger = get_logger("buildgate.gate")
    result = compare_measurement(baseline_ms, measured_ms, thresholds)

    if label is None and project and benchmark:
        label = f"{project}/{benchmark}"
    ci = detect_ci_context(runtime.cfg.ci)
    exit_code = report_result(result, logger=logger, label=label, ci=ci, stream=stream)

    run_id = None
    if record and project and benchmark:
        run_id = record_gate_run(
            runtime.db_session_factory,
            project=project,
            benchmark=benchmark,
            result=result,
            runs=runs,
            git_ref=git_ref,
            host=host,
        )

    notify_result(runtime.cfg.notifications, result, label=label, git_ref=git_ref)
    return GateOutcome(result=result, exit_code=exit_code, run_id=run_id)
