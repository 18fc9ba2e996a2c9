from __future__ import annotations

import argparse
import importlib
import sys

_COMMANDS = {
    "check": ("buildgate-check", "buildgate.apps.check_cli", "Compare a measurement against a baseline"),
    "bench": ("buildgate-bench", "buildgate.apps.bench_cli", "Time a build and gate it"),
    "baseline": ("buildgate-baseline", "buildgate.apps.baseline_cli", "Manage baselines"),
    "diag": ("buildgate-diag", "buildgate.apps.diagnostics_cli", "Run diagnostics"),
    "ci": ("buildgate-ci", "buildgate.apps.ci_cli", "Generate the CI workflow"),
    "api": ("buildgate-api", "buildgate.apps.api_server", "Serve the HTTP API"),
}


def main() -> int:
    parser = argparse.ArgumentParser(prog="bgate", description="BuildGate short command")
    subparsers = parser.add_subparsers(dest="command")
    for name, (_, _, help_text) in _COMMANDS.items():
        subparsers.add_parser(name, help=help_text)

    argv = sys.argv[1:]
    # Sub-command arguments are forwarded untouched; argparse REMAINDER drops leading options.
    if not argv or argv[0] not in _COMMANDS:
        parser.parse_args(argv)
        parser.print_help()
        return 1

    prog, module_name, _ = _COMMANDS[argv[0]]
    module = importlib.import_module(module_name)
    sys.argv = [prog, *argv[1:]]
    return module.main()


if __name__ == "__main__":
    raise SystemExit(main())
