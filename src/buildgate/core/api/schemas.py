from __future__ import annotations

from pydantic import BaseModel, Field


class CompareRequest(BaseModel):
    baseline_ms: float
    measured_ms: float
    warn_ratio: float | None = None
    block_ratio: float | None = None


class CompareResponse(BaseModel):
    verdict: str
    ratio: float
    baseline_ms: float
    measured_ms: float
    delta_ms: float
    delta_pct: float
    warn_ratio: float
    block_ratio: float
    message: str | None = None


class BaselineModel(BaseModel):
    project: str
    benchmark: str
    duration_ms: float
    recorded_at: str
    source: str = ""
    host: str = ""


class BaselineUpdateRequest(BaseModel):
    duration_ms: float = Field(gt=0)
    source: str = "api"
    host: str = ""


class RunSummaryModel(BaseModel):
    counts: dict[str, int]
    trend: dict | None = None
