from __future__ import annotations

import io
from types import SimpleNamespace

import pytest
import yaml

from buildgate.core.ci.annotations import CIContext, detect_ci_context, workflow_command
from buildgate.core.ci.workflow import render_workflow, write_workflow
from buildgate.core.compare.comparator import Verdict, compare_measurement
from buildgate.core.compare.report import (
    advisory_message,
    exit_code_for,
    render_result,
    render_summary_markdown,
    report_result,
)
from buildgate.core.config.schema import AppConfig
from buildgate.core.runtime.errors import InvalidInput


class RecordingLogger:
    def __init__(self):
        self.events = []

    def _log(self, level):
        def inner(event, **kw):
            self.events.append((level, event, kw))

        return inner

    def __getattr__(self, level):
        return self._log(level)


def test_exit_codes():
    assert exit_code_for(Verdict.PASS) == 0
    assert exit_code_for(Verdict.WARNING) == 0
    assert exit_code_for(Verdict.BLOCK) == 1


def test_pass_has_no_advisory():
    result = compare_measurement(1000, 1000)
    assert advisory_message(result) is None
    assert render_result(result, "web/build").startswith("web/build verdict=pass ratio=1.0000")


def test_warning_reports_advisory_and_exits_zero():
    logger = RecordingLogger()
    out = io.StringIO()
    rc = report_result(compare_measurement(1000, 1150), logger=logger, label="web/build", stream=out)
    text = out.getvalue()
    assert rc == 0
    assert "verdict=warning" in text
    assert "Not blocking" in text
    assert logger.events[0][0] == "warning"
    assert logger.events[0][1] == "gate_warning"
    assert logger.events[0][2]["label"] == "web/build"


def test_block_reports_error_and_exits_nonzero():
    logger = RecordingLogger()
    out = io.StringIO()
    rc = report_result(compare_measurement(1000, 1500), logger=logger, stream=out)
    assert rc == 1
    assert "blocking threshold" in out.getvalue()
    assert logger.events[0][:2] == ("error", "gate_block")


def test_ci_annotations_and_step_summary(tmp_path):
    summary = tmp_path / "summary.md"
    out = io.StringIO()
    ci = CIContext(annotations=True, step_summary_path=summary)
    rc = report_result(compare_measurement(1000, 1300), logger=RecordingLogger(), label="web/build", ci=ci, stream=out)
    assert rc == 1
    assert "::error title=Build performance block::" in out.getvalue()
    md = summary.read_text(encoding="utf-8")
    assert "| block | 1000.0 | 1300.0 | 1.3000 | +30.00% |" in md

    report_result(compare_measurement(1000, 1150), logger=RecordingLogger(), ci=ci, stream=out)
    assert "::warning title=Build performance warning::" in out.getvalue()
    assert summary.read_text(encoding="utf-8").count("### ") == 2


def test_pass_emits_no_annotation():
    out = io.StringIO()
    report_result(compare_measurement(10, 10), logger=RecordingLogger(), ci=CIContext(annotations=True), stream=out)
    assert "::" not in out.getvalue()


def test_workflow_command_escaping():
    assert workflow_command("warning", "50%\nslower", title="a:b,c") == "::warning title=a%3Ab%2Cc::50%25%0Aslower"


def test_detect_ci_context_modes():
    auto = SimpleNamespace(annotations="auto", step_summary_path=None)
    assert detect_ci_context(auto, {"GITHUB_ACTIONS": "true"}).annotations is True
    assert detect_ci_context(auto, {}).annotations is False
    assert detect_ci_context(SimpleNamespace(annotations="always", step_summary_path=None), {}).annotations is True
    never = detect_ci_context(SimpleNamespace(annotations="never", step_summary_path=None), {"GITHUB_ACTIONS": "true", "GITHUB_STEP_SUMMARY": "/tmp/s.md"})
    assert never.annotations is False
    assert str(never.step_summary_path) == "/tmp/s.md"


def test_summary_markdown_contains_message():
    md = render_summary_markdown(compare_measurement(1000, 1150), "web/build")
    assert "Build performance: web/build" in md
    assert "warning threshold" in md


def _job(cfg, **kw):
    doc = yaml.safe_load(render_workflow(cfg, project="web", benchmark="build", **kw))
    assert "pull_request" in doc["on"]
    return doc["jobs"]["build-perf"]


def test_render_workflow_targets_pull_requests(tmp_path):
    cfg = AppConfig.model_validate({"runner": {"command": ["make", "all"], "runs": 5}})
    job = _job(cfg)
    run = job["steps"][-1]["run"]
    assert run.startswith("buildgate-bench --project web --benchmark build --runs 5")
    assert run.endswith("-- make all")

    path = write_workflow(cfg, project="web", benchmark="build", path=tmp_path / "wf.yml")
    assert path.exists()
    with pytest.raises(FileExistsError):
        write_workflow(cfg, project="web", benchmark="build", path=path)
    write_workflow(cfg, project="web", benchmark="build", path=path, force=True)


def test_default_sqlite_workflow_persists_database_and_records_first_baseline():
    job = _job(AppConfig())
    steps = job["steps"]
    assert steps[2]["run"] == "pip install ."
    cache = [s for s in steps if s.get("uses", "").startswith("actions/cache")]
    assert len(cache) == 1
    assert cache[0]["with"]["path"] == "buildgate.db"
    assert cache[0]["with"]["key"] == "buildgate-web-build-${{ github.run_id }}"
    assert cache[0]["with"]["restore-keys"] == "buildgate-web-build-"
    assert "--record-if-missing" in steps[-1]["run"]
    assert "--config" not in steps[-1]["run"]


def test_install_spec_and_config_path_are_configurable():
    cfg = AppConfig.model_validate({"ci": {"install_spec": "buildgate==0.3.0", "config_path": "ci/buildgate.yaml"}})
    steps = _job(cfg)["steps"]
    assert steps[2]["run"] == "pip install buildgate==0.3.0"
    assert steps[-1]["run"].startswith("buildgate-bench --config ci/buildgate.yaml --project web")


def test_json_workflow_reads_committed_baselines():
    cfg = AppConfig.model_validate({"baseline": {"backend": "json", "json_path": "perf/baselines.json"}})
    with pytest.raises(InvalidInput, match="perf/baselines.json"):
        render_workflow(cfg, project="web", benchmark="build")

    steps = _job(cfg, config_path="buildgate.yaml")["steps"]
    assert not [s for s in steps if "actions/cache" in s.get("uses", "")]
    run = steps[-1]["run"]
    assert "--config buildgate.yaml" in run
    assert "--record-if-missing" not in run


def test_external_database_comes_from_secret():
    cfg = AppConfig.model_validate({"database": {"url": "postgresql://perf@db/buildgate"}})
    job = _job(cfg)
    assert job["env"]["BUILDGATE_DATABASE_URL"] == "${{ secrets.BUILDGATE_DATABASE_URL }}"
    assert not [s for s in job["steps"] if "actions/cache" in s.get("uses", "")]
    assert "--record-if-missing" in job["steps"][-1]["run"]


def test_in_memory_database_cannot_back_a_workflow(tmp_path):
    cfg = AppConfig.model_validate({"database": {"url": "sqlite:///:memory:"}})
    with pytest.raises(InvalidInput):
        write_workflow(cfg, project="web", benchmark="build", path=tmp_path / "wf.yml")
    assert not (tmp_path / "wf.yml").exists()
