from __future__ import annotations

import os
from typing import Annotated

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from buildgate import __version__
from buildgate.apps.runtime_support import build_gate_runtime
from buildgate.cli import add_config_argument, base_parser
from buildgate.core.api.schemas import (
    BaselineModel,
    BaselineUpdateRequest,
    CompareRequest,
    CompareResponse,
    RunSummaryModel,
)
from buildgate.core.baseline.store import Baseline, BaselineKey
from buildgate.core.compare.comparator import compare_measurement
from buildgate.core.compare.report import advisory_message
from buildgate.core.runtime.errors import BaselineNotFound, BaselineStoreError, InvalidInput
from buildgate.core.telemetry.history import recent_runs, trend, verdict_counts
from buildgate.core.telemetry.logging import get_logger


def create_app(config_path: str | None = None) -> FastAPI:
    runtime = build_gate_runtime(config_path=config_path)
    logger = get_logger("buildgate.api")
    app = FastAPI(title="BuildGate API", version=__version__)
    app.state.runtime = runtime

    @app.exception_handler(BaselineStoreError)
    async def _baseline_store_error(request: Request, exc: BaselineStoreError) -> JSONResponse:
        logger.error("baseline_store_unreadable", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=422, content={"detail": "baseline_store_error", "error": str(exc)})

    def _require_admin_token(x_admin_token: Annotated[str | None, Header()] = None) -> None:
        expected = os.getenv(runtime.cfg.api.admin_token_env, "").strip()
        if expected and x_admin_token != expected:
            raise HTTPException(status_code=401, detail="invalid_admin_token")

    def _assert_mutations_allowed() -> None:
        if runtime.cfg.api.read_only:
            raise HTTPException(status_code=403, detail="api_read_only_mode")

    def _key(project: str, benchmark: str) -> BaselineKey:
        try:
            return BaselineKey(project, benchmark)
        except InvalidInput as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    @app.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "version": __version__,
            "environment": runtime.cfg.environment,
            "warn_ratio": runtime.cfg.gate.warn_ratio,
            "block_ratio": runtime.cfg.gate.block_ratio,
        }

    @app.get("/baselines")
    def list_baselines(project: str | None = Query(default=None)) -> dict:
        return {"items": [BaselineModel(**b.as_dict()) for b in runtime.baseline_store.list(project=project)]}

    @app.get("/baselines/{project}/{benchmark}", response_model=BaselineModel)
    def get_baseline(project: str, benchmark: str) -> BaselineModel:
        try:
            baseline = runtime.baseline_store.require(_key(project, benchmark))
        except BaselineNotFound as exc:
            raise HTTPException(status_code=404, detail="baseline_not_found") from exc
        return BaselineModel(**baseline.as_dict())

    @app.put("/baselines/{project}/{benchmark}", response_model=BaselineModel)
    def put_baseline(
        project: str,
        benchmark: str,
        payload: BaselineUpdateRequest,
        _=Depends(_require_admin_token),
    ) -> BaselineModel:
        _assert_mutations_allowed()
        baseline = Baseline(key=_key(project, benchmark), duration_ms=payload.duration_ms, source=payload.source, host=payload.host)
        try:
            runtime.baseline_store.put(baseline)
        except InvalidInput as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        logger.info("baseline_updated", benchmark=baseline.key.slug(), duration_ms=payload.duration_ms, source=payload.source)
        return BaselineModel(**baseline.as_dict())

    @app.get("/runs")
    def runs(
        project: str | None = Query(default=None),
        benchmark: str | None = Query(default=None),
        limit: int = Query(default=50, ge=1, le=500),
    ) -> dict:
        return {"items": recent_runs(runtime.db_session_factory, project=project, benchmark=benchmark, limit=limit)}

    @app.get("/runs/summary", response_model=RunSummaryModel)
    def runs_summary(
        project: str | None = Query(default=None),
        benchmark: str | None = Query(default=None),
        limit: int = Query(default=20, ge=1, le=500),
    ) -> RunSummaryModel:
        series = None
        if project and benchmark:
            series = trend(runtime.db_session_factory, project=project, benchmark=benchmark, limit=limit)
        return RunSummaryModel(counts=verdict_counts(runtime.db_session_factory, project=project), trend=series)

    @app.post("/compare", response_model=CompareResponse)
    def compare(payload: CompareRequest) -> CompareResponse:
        try:
            thresholds = runtime.thresholds(payload.warn_ratio, payload.block_ratio)
            result = compare_measurement(payload.baseline_ms, payload.measured_ms, thresholds)
        except InvalidInput as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return CompareResponse(**result.as_dict(), message=advisory_message(result))

    return app


def main() -> int:
    parser = base_parser("buildgate-api", "BuildGate baseline and run-history API")
    add_config_argument(parser)
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args()

    api = create_app(config_path=args.config)
    cfg = api.state.runtime.cfg
    uvicorn.run(api, host=args.host or cfg.api.host, port=args.port or cfg.api.port, log_level="info")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
