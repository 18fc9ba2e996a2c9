from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any

import yaml

from buildgate.core.runtime.errors import InvalidInput

SQLITE_PREFIX = "sqlite:///"


def _sqlite_file(database_url: str) -> str | None:
    if not database_url.startswith(SQLITE_PREFIX):
        return None
    raw = database_url[len(SQLITE_PREFIX) :]
    if not raw or raw == ":memory:":
        raise InvalidInput("an in-memory sqlite database cannot keep baselines between CI runs")
    return raw


def _bench_command(
    project: str,
    benchmark: str,
    command: list[str],
    runs: int,
    *,
    config_path: str | None = None,
    record_if_missing: bool = False,
) -> str:
    parts = ["buildgate-bench"]
    if config_path:
        parts += ["--config", config_path]
    parts += ["--project", project, "--benchmark", benchmark, "--runs", str(runs)]
    parts += ["--git-ref", "${{ github.event.pull_request.head.sha }}"]
    if record_if_missing:
        parts.append("--record-if-missing")
    rendered = " ".join(shlex.quote(p) if not p.startswith("${{") else f'"{p}"' for p in parts)
    if command:
        rendered += " -- " + " ".join(shlex.quote(c) for c in command)
    return rendered


def workflow_document(cfg, *, project: str, benchmark: str, config_path: str | None = None) -> dict[str, Any]:
    config_path = config_path or cfg.ci.config_path
    env = {"BUILDGATE_WEBHOOK_URL": "${{ secrets.BUILDGATE_WEBHOOK_URL }}"}
    persist_steps: list[dict[str, Any]] = []
    record_if_missing = False

    if cfg.baseline.backend == "json":
        if not config_path:
            raise InvalidInput(
                f"json baselines live in {cfg.baseline.json_path}; pass the committed config file with --config"
            )
    else:
        record_if_missing = True
        db_file = _sqlite_file(cfg.database.url)
        if db_file is None:
            env["BUILDGATE_DATABASE_URL"] = "${{ secrets.BUILDGATE_DATABASE_URL }}"
        else:
            persist_steps.append(
                {
                    "name": "Restore baseline database",
                    "uses": "actions/cache@v4",
                    "with": {
                        "path": db_file,
                        "key": f"buildgate-{project}-{benchmark}-${{{{ github.run_id }}}}",
                        "restore-keys": f"buildgate-{project}-{benchmark}-",
                    },
                }
            )

    bench = _bench_command(
        project,
        benchmark,
        list(cfg.runner.command),
        cfg.runner.runs,
        config_path=config_path,
        record_if_missing=record_if_missing,
    )
    return {
        "name": "Build performance",
        "on": {"pull_request": {"types": ["opened", "synchronize", "reopened"]}},
        "permissions": {"contents": "read"},
        "jobs": {
            "build-perf": {
                "runs-on": "ubuntu-latest",
                "env": env,
                "steps": [
                    {"uses": "actions/checkout@v4"},
                    {"uses": "actions/setup-python@v5", "with": {"python-version": cfg.ci.python_version}},
                    {"name": "Install BuildGate", "run": f"pip install {shlex.quote(cfg.ci.install_spec)}"},
                    *persist_steps,
                    {"name": "Measure build and compare with baseline", "run": bench},
                ],
            }
        },
    }


def render_workflow(cfg, *, project: str, benchmark: str, config_path: str | None = None) -> str:
    doc = workflow_document(cfg, project=project, benchmark=benchmark, config_path=config_path)
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)


def write_workflow(
    cfg,
    *,
    project: str,
    benchmark: str,
    path: str | Path | None = None,
    force: bool = False,
    config_path: str | None = None,
) -> Path:
    target = Path(path or cfg.ci.workflow_path)
    if target.exists() and not force:
        raise FileExistsError(f"workflow already exists: {target} (use --force to overwrite)")
    content = render_workflow(cfg, project=project, benchmark=benchmark, config_path=config_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target
