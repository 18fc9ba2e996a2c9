from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select

from buildgate.core.compare.comparator import ComparisonResult
from buildgate.db.models import GateRun
from buildgate.db.session import session_scope


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def record_gate_run(
    db_session_factory,
    *,
    project: str,
    benchmark: str,
    result: ComparisonResult,
    runs: int = 1,
    git_ref: str = "",
    host: str = "",
) -> int:
    with session_scope(db_session_factory) as db:
        row = GateRun(
            project=project,
            benchmark=benchmark,
            baseline_ms=result.baseline_ms,
            measured_ms=result.measured_ms,
            ratio=result.ratio,
            verdict=result.verdict.value,
            runs=runs,
            git_ref=git_ref,
            host=host,
            created_at=_utcnow(),
        )
        db.add(row)
        db.flush()
        return int(row.id)


def _run_dict(r: GateRun) -> dict:
    return {
        "id": r.id,
        "project": r.project,
        "benchmark": r.benchmark,
        "baseline_ms": r.baseline_ms,
        "measured_ms": r.measured_ms,
        "ratio": round(r.ratio, 6),
        "verdict": r.verdict,
        "runs": r.runs,
        "git_ref": r.git_ref,
        "host": r.host,
        "created_at": _as_iso(r.created_at),
    }


def recent_runs(db_session_factory, *, project: str | None = None, benchmark: str | None = None, limit: int = 20) -> list[dict]:
    stmt = select(GateRun).order_by(GateRun.created_at.desc(), GateRun.id.desc()).limit(limit)
    if project is not None:
        stmt = stmt.where(GateRun.project == project)
    if benchmark is not None:
        stmt = stmt.where(GateRun.benchmark == benchmark)
    with db_session_factory() as db:
        rows = db.execute(stmt).scalars().all()
    return [_run_dict(r) for r in rows]


def verdict_counts(db_session_factory, *, project: str | None = None) -> dict[str, int]:
    stmt = select(GateRun.verdict, func.count(GateRun.id)).group_by(GateRun.verdict)
    if project is not None:
        stmt = stmt.where(GateRun.project == project)
    with db_session_factory() as db:
        rows = db.execute(stmt).all()
    counts = {"pass": 0, "warning": 0, "block": 0}
    counts.update({str(k): int(v) for k, v in rows})
    return counts


def trend(db_session_factory, *, project: str, benchmark: str, limit: int = 20) -> dict:
    runs = list(reversed(recent_runs(db_session_factory, project=project, benchmark=benchmark, limit=limit)))
    if not runs:
        return {"project": project, "benchmark": benchmark, "count": 0, "avg_ratio": 0.0, "worst_ratio": 0.0, "points": []}
    ratios = [r["ratio"] for r in runs]
    return {
        "project": project,
        "benchmark": benchmark,
        "count": len(runs),
        "avg_ratio": round(sum(ratios) / len(ratios), 4),
        "worst_ratio": round(max(ratios), 4),
        "points": [{"created_at": r["created_at"], "measured_ms": r["measured_ms"], "verdict": r["verdict"]} for r in runs],
    }
