from __future__ import annotations

from dataclasses import dataclass

from buildgate.core.baseline.store import BaselineStore, build_baseline_store
from buildgate.core.compare.comparator import Thresholds
from buildgate.core.config.loader import load_app_config
from buildgate.core.config.schema import AppConfig
from buildgate.core.telemetry.logging import configure_logging
from buildgate.db.session import init_db


@dataclass(slots=True)
class GateRuntime:
    cfg: AppConfig
    db_session_factory: object
    baseline_store: BaselineStore

    def thresholds(self, warn_ratio: float | None = None, block_ratio: float | None = None) -> Thresholds:
        return Thresholds(
            warn_ratio=self.cfg.gate.warn_ratio if warn_ratio is None else warn_ratio,
            block_ratio=self.cfg.gate.block_ratio if block_ratio is None else block_ratio,
        )


def build_gate_runtime(config_path: str | None = None, cfg: AppConfig | None = None) -> GateRuntime:
    cfg = cfg or load_app_config(instance_path=config_path)
    configure_logging(cfg.telemetry.log_level, cfg.telemetry.json_logs)
    factory = init_db(cfg.database.url)
    store = build_baseline_store(cfg, db_session_factory=factory)
    return GateRuntime(cfg=cfg, db_session_factory=factory, baseline_store=store)
