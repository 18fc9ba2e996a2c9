from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from buildgate.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaselineRecord(Base):
    __tablename__ = "baselines"
    __table_args__ = (UniqueConstraint("project", "benchmark", name="uq_baselines_project_benchmark"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project: Mapped[str] = mapped_column(String(128), nullable=False)
    benchmark: Mapped[str] = mapped_column(String(128), nullable=False)
    duration_ms: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    host: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    recorded_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)


class GateRun(Base):
    __tablename__ = "gate_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    benchmark: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    baseline_ms: Mapped[float] = mapped_column(Float, nullable=False)
    measured_ms: Mapped[float] = mapped_column(Float, nullable=False)
    ratio: Mapped[float] = mapped_column(Float, nullable=False)
    verdict: Mapped[str] = mapped_column(String(16), nullable=False)
    runs: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    git_ref: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    host: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
