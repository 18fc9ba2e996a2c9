from __future__ import annotations

from buildgate.apps.runtime_support import build_gate_runtime
from buildgate.cli import add_config_argument, base_parser
from buildgate.core.config.loader import load_app_config
from buildgate.core.runner.environment import collect_host_fingerprint, render_host_summary
from buildgate.core.telemetry.history import recent_runs, trend, verdict_counts


def main() -> int:
    parser = base_parser("buildgate-diag", "BuildGate diagnostics CLI")
    add_config_argument(parser)
    parser.add_argument("--validate-config", action="store_true")
    parser.add_argument("--host", action="store_true", help="Show the host fingerprint attached to measurements")
    parser.add_argument("--history", action="store_true", help="Show recent gate runs")
    parser.add_argument("--verdicts", action="store_true", help="Show verdict counts")
    parser.add_argument("--trend", action="store_true", help="Show ratio trend for --project/--benchmark")
    parser.add_argument("--project", default=None)
    parser.add_argument("--benchmark", default=None)
    parser.add_argument("--limit", type=int, default=10)
    args = parser.parse_args()

    did_work = False
    cfg = None

    if args.validate_config or args.history or args.verdicts or args.trend:
        try:
            cfg = load_app_config(instance_path=args.config)
            if args.validate_config:
                did_work = True
                print(
                    f"config-valid instance={cfg.instance.name} env={cfg.environment} "
                    f"warn_ratio={cfg.gate.warn_ratio} block_ratio={cfg.gate.block_ratio} "
                    f"baseline_backend={cfg.baseline.backend}"
                )
        except Exception as exc:  # noqa: BLE001
            print(f"config-invalid error={exc}")
            return 1

    if args.host:
        did_work = True
        print("host-summary:")
        print(render_host_summary(collect_host_fingerprint()))

    runtime = None
    if args.history or args.verdicts or args.trend:
        did_work = True
        runtime = build_gate_runtime(cfg=cfg)

    if args.history and runtime is not None:
        print("gate-history:")
        rows = recent_runs(runtime.db_session_factory, project=args.project, benchmark=args.benchmark, limit=args.limit)
        if not rows:
            print("- none")
        for row in rows:
            print(
                f"- {row['project']}/{row['benchmark']} verdict={row['verdict']} ratio={row['ratio']} "
                f"measured_ms={row['measured_ms']} baseline_ms={row['baseline_ms']} ref={row['git_ref'] or '-'}"
            )

    if args.verdicts and runtime is not None:
        print("verdict-counts:")
        counts = verdict_counts(runtime.db_session_factory, project=args.project)
        for name in ("pass", "warning", "block"):
            print(f"- {name}={counts.get(name, 0)}")

    if args.trend and runtime is not None:
        if not (args.project and args.benchmark):
            print("trend requires --project and --benchmark")
            return 1
        t = trend(runtime.db_session_factory, project=args.project, benchmark=args.benchmark, limit=args.limit)
        print("trend:")
        print(f"- count={t['count']} avg_ratio={t['avg_ratio']} worst_ratio={t['worst_ratio']}")

    if not did_work:
        print("diag-ready (use --validate-config/--host/--history/--verdicts/--trend)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
