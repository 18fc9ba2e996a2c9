from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator


class InstanceConfig(BaseModel):
    name: str = "buildgate"


class GateConfig(BaseModel):
    warn_ratio: float = Field(default=1.10, gt=0)
    block_ratio: float = Field(default=1.20, gt=0)

    @model_validator(mode="after")
    def _check_order(self) -> "GateConfig":
        if self.warn_ratio > self.block_ratio:
            raise ValueError(f"warn_ratio {self.warn_ratio} must not exceed block_ratio {self.block_ratio}")
        return self


class RunnerConfig(BaseModel):
    command: list[str] = Field(default_factory=list)
    cwd: str | None = None
    runs: int = Field(default=3, ge=1)
    warmup_runs: int = Field(default=0, ge=0)
    timeout_seconds: int = Field(default=1800, ge=1)


class BaselineConfig(BaseModel):
    backend: Literal["sql", "json"] = "sql"
    json_path: str = "benchmarks/baselines.json"
    default_project: str | None = None


class TelemetryConfig(BaseModel):
    log_level: str = "INFO"
    json_logs: bool = True


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///buildgate.db"


class CIConfig(BaseModel):
    annotations: Literal["auto", "always", "never"] = "auto"
    step_summary_path: str | None = None
    workflow_path: str = ".github/workflows/build-perf.yml"
    python_version: str = "3.11"
    install_spec: str = "."
    config_path: str | None = None


class NotificationConfig(BaseModel):
    enabled: bool = False
    webhook_url_env: str = "BUILDGATE_WEBHOOK_URL"
    notify_on: list[Literal["warning", "block"]] = Field(default_factory=lambda: ["warning", "block"])
    timeout_seconds: float = 5.0
    retry_attempts: int = Field(default=2, ge=1)


class ApiConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8088
    admin_token_env: str = "BUILDGATE_ADMIN_TOKEN"
    read_only: bool = False


class AppConfig(BaseModel):
    instance: InstanceConfig = Field(default_factory=InstanceConfig)
    environment: str = "dev"
    gate: GateConfig = Field(default_factory=GateConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    baseline: BaselineConfig = Field(default_factory=BaselineConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ci: CIConfig = Field(default_factory=CIConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
