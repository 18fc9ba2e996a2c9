from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class CIContext:
    annotations: bool = False
    step_summary_path: Path | None = None


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def workflow_command(level: str, message: str, *, title: str | None = None) -> str:
    """Render a GitHub Actions workflow command such as ``::warning title=x::msg``."""
    props = f" title={_escape_property(title)}" if title else ""
    return f"::{level}{props}::{_escape_data(message)}"


def detect_ci_context(ci_cfg, environ: dict[str, str] | None = None) -> CIContext:
    env = os.environ if environ is None else environ
    mode = ci_cfg.annotations
    if mode == "always":
        annotations = True
    elif mode == "never":
        annotations = False
    else:
        annotations = env.get("GITHUB_ACTIONS", "").lower() == "true"

    summary = ci_cfg.step_summary_path or env.get("GITHUB_STEP_SUMMARY") or None
    return CIContext(annotations=annotations, step_summary_path=Path(summary) if summary else None)


def append_step_summary(path: Path, markdown: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(markdown)
        if not markdown.endswith("\n"):
            f.write("\n")
