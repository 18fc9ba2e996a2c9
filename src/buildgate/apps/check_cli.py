from __future__ import annotations

from buildgate.apps.runtime_support import build_gate_runtime
from buildgate.cli import EXIT_INVALID_INPUT, add_config_argument, base_parser
from buildgate.core.baseline.store import BaselineKey
from buildgate.core.compare.gate import run_gate
from buildgate.core.runtime.errors import BaselineNotFound, BaselineStoreError, InvalidInput, compact_error_summary


def main() -> int:
    parser = base_parser("buildgate-check", "Compare a build measurement against a baseline")
    add_config_argument(parser)
    parser.add_argument("--measured-ms", type=float, required=True, help="Measured build duration in milliseconds")
    parser.add_argument("--baseline-ms", type=float, default=None, help="Baseline duration; looked up from the store if omitted")
    parser.add_argument("--project", default=None)
    parser.add_argument("--benchmark", default=None)
    parser.add_argument("--warn-ratio", type=float, default=None)
    parser.add_argument("--block-ratio", type=float, default=None)
    parser.add_argument("--label", default=None)
    parser.add_argument("--git-ref", default="")
    parser.add_argument("--no-record", action="store_true", help="Do not store this comparison in run history")
    args = parser.parse_args()

    try:
        runtime = build_gate_runtime(config_path=args.config)
    except ValueError as exc:
        print(f"config-invalid error={exc}")
        return EXIT_INVALID_INPUT

    project = args.project or runtime.cfg.baseline.default_project
    try:
        thresholds = runtime.thresholds(args.warn_ratio, args.block_ratio)
        baseline_ms = args.baseline_ms
        if baseline_ms is None:
            if not (project and args.benchmark):
                raise InvalidInput("either --baseline-ms or --project/--benchmark is required")
            baseline_ms = runtime.baseline_store.require(BaselineKey(project, args.benchmark)).duration_ms
        outcome = run_gate(
            runtime,
            baseline_ms=baseline_ms,
            measured_ms=args.measured_ms,
            thresholds=thresholds,
            project=project,
            benchmark=args.benchmark,
            label=args.label,
            git_ref=args.git_ref,
            record=not args.no_record,
        )
    except (InvalidInput, BaselineNotFound, BaselineStoreError) as exc:
        print(f"gate-error {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT
    return outcome.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
