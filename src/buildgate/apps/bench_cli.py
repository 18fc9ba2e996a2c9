from __future__ import annotations

import json
import sys
from pathlib import Path

from buildgate.apps.runtime_support import build_gate_runtime
from buildgate.cli import EXIT_INVALID_INPUT, EXIT_MEASUREMENT_FAILED, EXIT_OK, add_config_argument, base_parser
from buildgate.core.baseline.store import Baseline, BaselineKey
from buildgate.core.compare.comparator import Verdict
from buildgate.core.compare.gate import run_gate
from buildgate.core.runner.environment import collect_host_fingerprint, parse_host_label
from buildgate.core.runner.timer import measure_build
from buildgate.core.runtime.errors import BaselineStoreError, InvalidInput, MeasurementError, compact_error_summary
from buildgate.core.telemetry.logging import get_logger


def _write_output(path: str, payload: dict) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def main() -> int:
    parser = base_parser("buildgate-bench", "Time a build command and gate it against the stored baseline")
    add_config_argument(parser)
    parser.add_argument("--project", default=None)
    parser.add_argument("--benchmark", required=True)
    parser.add_argument("--runs", type=int, default=None, help="Timed runs; the median is compared")
    parser.add_argument("--warmup", type=int, default=None, help="Untimed warmup runs")
    parser.add_argument("--timeout", type=int, default=None, help="Per-run timeout in seconds")
    parser.add_argument("--cwd", default=None, help="Working directory for the build")
    parser.add_argument("--warn-ratio", type=float, default=None)
    parser.add_argument("--block-ratio", type=float, default=None)
    parser.add_argument("--git-ref", default="")
    parser.add_argument("--update-baseline", action="store_true", help="Replace the baseline unless the run blocks")
    parser.add_argument("--record-if-missing", action="store_true", help="Record the measurement when no baseline exists")
    parser.add_argument("--output", default=None, help="Write a JSON result artifact")
    parser.epilog = "The build command follows a literal --, e.g. buildgate-bench --benchmark build -- make all"

    argv = sys.argv[1:]
    command: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, command = argv[:split], argv[split + 1 :]
    args = parser.parse_args(argv)

    try:
        runtime = build_gate_runtime(config_path=args.config)
    except ValueError as exc:
        print(f"config-invalid error={exc}")
        return EXIT_INVALID_INPUT
    cfg = runtime.cfg
    logger = get_logger("buildgate.bench")

    command = command or list(cfg.runner.command)

    try:
        key = BaselineKey(args.project or cfg.baseline.default_project or "", args.benchmark)
        thresholds = runtime.thresholds(args.warn_ratio, args.block_ratio)
        if not command:
            raise InvalidInput("no build command given and runner.command is not configured")
    except InvalidInput as exc:
        print(f"gate-error {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT

    try:
        baseline = runtime.baseline_store.get(key)
    except BaselineStoreError as exc:
        print(f"baseline-store-error {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT
    if baseline is None and not args.record_if_missing:
        print(f"baseline-missing {key.slug()} (record one with buildgate-baseline set or --record-if-missing)")
        return EXIT_INVALID_INPUT

    host = collect_host_fingerprint()
    runs = args.runs if args.runs is not None else cfg.runner.runs
    try:
        summary = measure_build(
            command,
            runs=runs,
            warmup_runs=args.warmup if args.warmup is not None else cfg.runner.warmup_runs,
            cwd=args.cwd or cfg.runner.cwd,
            timeout_seconds=args.timeout or cfg.runner.timeout_seconds,
        )
    except InvalidInput as exc:
        print(f"gate-error {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT
    except MeasurementError as exc:
        logger.error("build_failed", benchmark=key.slug(), error=compact_error_summary(exc))
        print(f"measurement-failed {compact_error_summary(exc)}")
        return EXIT_MEASUREMENT_FAILED

    measured_ms = summary.median_ms
    print(
        f"measurement {key.slug()} median_ms={measured_ms:.1f} min_ms={summary.min_ms:.1f} "
        f"max_ms={summary.max_ms:.1f} runs={len(summary.samples_ms)}"
    )

    if baseline is None:
        runtime.baseline_store.put(Baseline(key=key, duration_ms=measured_ms, source=args.git_ref or "bench", host=host.label()))
        logger.info("baseline_recorded", benchmark=key.slug(), duration_ms=round(measured_ms, 3))
        print(f"baseline-recorded {key.slug()} duration_ms={measured_ms:.1f}")
        if args.output:
            _write_output(args.output, {"benchmark": key.slug(), "baseline_recorded": True, "measurement": summary.as_dict()})
        return EXIT_OK

    if not host.comparable_with(parse_host_label(baseline.host)):
        logger.warning("baseline_host_mismatch", benchmark=key.slug(), baseline_host=baseline.host, current_host=host.label())

    try:
        outcome = run_gate(
            runtime,
            baseline_ms=baseline.duration_ms,
            measured_ms=measured_ms,
            thresholds=thresholds,
            project=key.project,
            benchmark=key.benchmark,
            runs=len(summary.samples_ms),
            git_ref=args.git_ref,
            host=host.label(),
        )
    except InvalidInput as exc:
        print(f"gate-error {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT

    if args.update_baseline:
        if outcome.result.verdict is Verdict.BLOCK:
            logger.warning("baseline_update_refused", benchmark=key.slug(), verdict=outcome.result.verdict.value)
            print(f"baseline-unchanged {key.slug()} (blocked runs never replace the baseline)")
        else:
            runtime.baseline_store.put(
                Baseline(key=key, duration_ms=measured_ms, source=args.git_ref or "bench", host=host.label())
            )
            logger.info("baseline_updated", benchmark=key.slug(), previous_ms=baseline.duration_ms, duration_ms=round(measured_ms, 3))
            print(f"baseline-updated {key.slug()} duration_ms={measured_ms:.1f}")

    if args.output:
        _write_output(
            args.output,
            {"benchmark": key.slug(), "result": outcome.result.as_dict(), "measurement": summary.as_dict(), "git_ref": args.git_ref},
        )
    return outcome.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
