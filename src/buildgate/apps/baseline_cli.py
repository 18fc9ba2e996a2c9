from __future__ import annotations

import json

from buildgate.apps.runtime_support import build_gate_runtime
from buildgate.cli import EXIT_INVALID_INPUT, EXIT_OK, add_config_argument, base_parser
from buildgate.core.baseline.store import Baseline, BaselineKey
from buildgate.core.runner.environment import collect_host_fingerprint
from buildgate.core.runtime.errors import BaselineNotFound, BaselineStoreError, InvalidInput, compact_error_summary
from buildgate.core.telemetry.logging import get_logger


def _print_baseline(b: Baseline) -> None:
    print(
        f"- {b.key.slug()}: duration_ms={b.duration_ms:.1f} recorded_at={b.recorded_at.isoformat()} "
        f"source={b.source or '-'} host={b.host or '-'}"
    )


def main() -> int:
    parser = base_parser("buildgate-baseline", "Manage stored build-time baselines")
    add_config_argument(parser)
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    sub = parser.add_subparsers(dest="action")

    set_parser = sub.add_parser("set", help="Record or replace a baseline")
    set_parser.add_argument("--project", default=None)
    set_parser.add_argument("--benchmark", required=True)
    set_parser.add_argument("--duration-ms", type=float, required=True)
    set_parser.add_argument("--source", default="manual")

    show_parser = sub.add_parser("show", help="Show one baseline")
    show_parser.add_argument("--project", default=None)
    show_parser.add_argument("--benchmark", required=True)

    list_parser = sub.add_parser("list", help="List baselines")
    list_parser.add_argument("--project", default=None)

    delete_parser = sub.add_parser("delete", help="Delete a baseline")
    delete_parser.add_argument("--project", default=None)
    delete_parser.add_argument("--benchmark", required=True)

    args = parser.parse_args()
    if not args.action:
        parser.print_help()
        return EXIT_INVALID_INPUT

    try:
        runtime = build_gate_runtime(config_path=args.config)
    except ValueError as exc:
        print(f"config-invalid error={exc}")
        return EXIT_INVALID_INPUT
    store = runtime.baseline_store
    logger = get_logger("buildgate.baseline")
    project = args.project or runtime.cfg.baseline.default_project

    try:
        if args.action == "list":
            items = store.list(project=project)
            if args.json:
                print(json.dumps([b.as_dict() for b in items], indent=2))
                return EXIT_OK
            print("baselines:")
            if not items:
                print("- none")
            for b in items:
                _print_baseline(b)
            return EXIT_OK

        key = BaselineKey(project or "", args.benchmark)
        if args.action == "set":
            baseline = Baseline(
                key=key,
                duration_ms=args.duration_ms,
                source=args.source,
                host=collect_host_fingerprint().label(),
            )
            store.put(baseline)
            logger.info("baseline_updated", benchmark=key.slug(), duration_ms=args.duration_ms, source=args.source)
            print(f"baseline-set {key.slug()} duration_ms={args.duration_ms:.1f}")
            return EXIT_OK

        if args.action == "show":
            baseline = store.require(key)
            if args.json:
                print(json.dumps(baseline.as_dict(), indent=2))
            else:
                _print_baseline(baseline)
            return EXIT_OK

        if args.action == "delete":
            removed = store.delete(key)
            logger.info("baseline_deleted", benchmark=key.slug(), removed=removed)
            print(f"baseline-deleted {key.slug()} removed={removed}")
            return EXIT_OK if removed else EXIT_INVALID_INPUT
    except (InvalidInput, BaselineNotFound, BaselineStoreError) as exc:
        print(f"baseline-error {compact_error_summary(exc)}")
        return EXIT_INVALID_INPUT

    parser.print_help()
    return EXIT_INVALID_INPUT


if __name__ == "__main__":
    raise SystemExit(main())
