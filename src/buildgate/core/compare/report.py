"""Reporting for comparison results.

WARNING is advisory only and exits 0. BLOCK exits non-zero so the invoking CI
job fails and the change cannot merge.
"""

from __future__ import annotations

import sys

from buildgate.cli import EXIT_BLOCK, EXIT_OK
from buildgate.core.ci.annotations import CIContext, append_step_summary, workflow_command
from buildgate.core.compare.comparator import ComparisonResult, Verdict

_LOG_EVENTS = {
    Verdict.PASS: ("info", "gate_pass"),
    Verdict.WARNING: ("warning", "gate_warning"),
    Verdict.BLOCK: ("error", "gate_block"),
}

_VERDICT_ICONS = {Verdict.PASS: "✅", Verdict.WARNING: "⚠️", Verdict.BLOCK: "⛔"}


def exit_code_for(verdict: Verdict) -> int:
    return EXIT_BLOCK if verdict is Verdict.BLOCK else EXIT_OK


def render_result(result: ComparisonResult, label: str | None = None) -> str:
    prefix = f"{label} " if label else ""
    return (
        f"{prefix}verdict={result.verdict.value} ratio={result.ratio:.4f} "
        f"baseline_ms={result.baseline_ms:.1f} measured_ms={result.measured_ms:.1f} "
        f"delta_pct={result.delta_pct:+.2f}"
    )


def advisory_message(result: ComparisonResult, label: str | None = None) -> str | None:
    subject = label or "build"
    pct = f"{result.delta_pct:+.1f}%"
    if result.verdict is Verdict.WARNING:
        return (
            f"Build time for {subject} regressed {pct} "
            f"({result.baseline_ms:.0f}ms -> {result.measured_ms:.0f}ms), above the "
            f"{(result.thresholds.warn_ratio - 1) * 100:.0f}% warning threshold. Not blocking."
        )
    if result.verdict is Verdict.BLOCK:
        return (
            f"Build time for {subject} regressed {pct} "
            f"({result.baseline_ms:.0f}ms -> {result.measured_ms:.0f}ms), above the "
            f"{(result.thresholds.block_ratio - 1) * 100:.0f}% blocking threshold."
        )
    return None


def render_summary_markdown(result: ComparisonResult, label: str | None = None) -> str:
    title = label or "build"
    icon = _VERDICT_ICONS[result.verdict]
    lines = [
        f"### {icon} Build performance: {title}",
        "",
        "| verdict | baseline (ms) | measured (ms) | ratio | delta |",
        "| --- | ---: | ---: | ---: | ---: |",
        (
            f"| {result.verdict.value} | {result.baseline_ms:.1f} | {result.measured_ms:.1f} "
            f"| {result.ratio:.4f} | {result.delta_pct:+.2f}% |"
        ),
    ]
    message = advisory_message(result, label)
    if message:
        lines.extend(["", message])
    return "\n".join(lines) + "\n"


def report_result(result: ComparisonResult, *, logger, label: str | None = None, ci: CIContext | None = None, stream=None) -> int:
    out = stream or sys.stdout
    level, event = _LOG_EVENTS[result.verdict]
    getattr(logger, level)(event, label=label, **result.as_dict())

    print(render_result(result, label), file=out)
    message = advisory_message(result, label)
    if message:
        print(message, file=out)

    if ci is not None:
        if ci.annotations and message:
            annotation_level = "error" if result.verdict is Verdict.BLOCK else "warning"
            print(workflow_command(annotation_level, message, title=f"Build performance {result.verdict.value}"), file=out)
        if ci.step_summary_path is not None:
            append_step_summary(ci.step_summary_path, render_summary_markdown(result, label))

    return exit_code_for(result.verdict)
