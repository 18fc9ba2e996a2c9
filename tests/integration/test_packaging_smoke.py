from __future__ import annotations

import subprocess
import sys


def _run(args: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(args, capture_output=True, text=True, check=False)


def test_cli_help_smoke():
    cmds = [
        [sys.executable, "-m", "buildgate.apps.check_cli", "--help"],
        [sys.executable, "-m", "buildgate.apps.bench_cli", "--help"],
        [sys.executable, "-m", "buildgate.apps.baseline_cli", "--help"],
        [sys.executable, "-m", "buildgate.apps.diagnostics_cli", "--help"],
        [sys.executable, "-m", "buildgate.apps.ci_cli", "--help"],
        [sys.executable, "-m", "buildgate.apps.api_server", "--help"],
        [sys.executable, "-m", "buildgate.apps.short_cli", "--help"],
    ]
    for cmd in cmds:
        proc = _run(cmd)
        assert proc.returncode == 0, proc.stderr
        assert "usage" in proc.stdout
