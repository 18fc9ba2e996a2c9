"""Baseline persistence.

A baseline is only ever replaced wholesale through ``put``; comparisons read a
frozen snapshot of it.
"""

from __future__ import annotations

import json
import math
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import delete, select

from buildgate.core.runtime.errors import BaselineNotFound, BaselineStoreError, InvalidInput
from buildgate.db.models import BaselineRecord
from buildgate.db.session import init_db, session_scope


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True, slots=True)
class BaselineKey:
    project: str
    benchmark: str

    def __post_init__(self) -> None:
        for name in ("project", "benchmark"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidInput(f"baseline {name} must be a non-empty string")
            if "/" in value:
                raise InvalidInput(f"baseline {name} must not contain '/': {value!r}")

    def slug(self) -> str:
        return f"{self.project}/{self.benchmark}"

    @classmethod
    def parse(cls, slug: str) -> "BaselineKey":
        project, sep, benchmark = slug.partition("/")
        if not sep:
            raise InvalidInput(f"baseline key must look like project/benchmark, got {slug!r}")
        return cls(project=project, benchmark=benchmark)


@dataclass(frozen=True, slots=True)
class Baseline:
    key: BaselineKey
    duration_ms: float
    recorded_at: datetime = field(default_factory=_utcnow)
    source: str = ""
    host: str = ""

    def as_dict(self) -> dict:
        return {
            "project": self.key.project,
            "benchmark": self.key.benchmark,
            "duration_ms": self.duration_ms,
            "recorded_at": self.recorded_at.isoformat(),
            "source": self.source,
            "host": self.host,
        }


def _check_duration(duration_ms) -> float:
    if isinstance(duration_ms, bool) or not isinstance(duration_ms, (int, float)):
        raise InvalidInput(f"baseline duration must be a number, got {type(duration_ms).__name__}")
    value = float(duration_ms)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f"baseline duration must be positive, got {duration_ms!r}")
    return value


class BaselineStore(ABC):
    @abstractmethod
    def get(self, key: BaselineKey) -> Baseline | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, baseline: Baseline) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: BaselineKey) -> bool:
        raise NotImplementedError

    @abstractmethod
    def list(self, project: str | None = None) -> list[Baseline]:
        raise NotImplementedError

    def require(self, key: BaselineKey) -> Baseline:
        baseline = self.get(key)
        if baseline is None:
            raise BaselineNotFound(key.project, key.benchmark)
        return baseline


class SqlBaselineStore(BaselineStore):
    def __init__(self, db_session_factory) -> None:
        self.db_session_factory = db_session_factory

    @staticmethod
    def _to_baseline(row: BaselineRecord) -> Baseline:
        return Baseline(
            key=BaselineKey(project=row.project, benchmark=row.benchmark),
            duration_ms=float(row.duration_ms),
            recorded_at=_as_utc(row.recorded_at),
            source=row.source,
            host=row.host,
        )

    def get(self, key: BaselineKey) -> Baseline | None:
        with self.db_session_factory() as db:
            row = db.execute(
                select(BaselineRecord).where(
                    BaselineRecord.project == key.project,
                    BaselineRecord.benchmark == key.benchmark,
                )
            ).scalar_one_or_none()
            return self._to_baseline(row) if row is not None else None

    def put(self, baseline: Baseline) -> None:
        duration = _check_duration(baseline.duration_ms)
        with session_scope(self.db_session_factory) as db:
            row = db.execute(
                select(BaselineRecord).where(
                    BaselineRecord.project == baseline.key.project,
                    BaselineRecord.benchmark == baseline.key.benchmark,
                )
            ).scalar_one_or_none()
            if row is None:
                row = BaselineRecord(project=baseline.key.project, benchmark=baseline.key.benchmark)
                db.add(row)
            row.duration_ms = duration
            row.source = baseline.source
            row.host = baseline.host
            row.recorded_at = baseline.recorded_at

    def delete(self, key: BaselineKey) -> bool:
        with session_scope(self.db_session_factory) as db:
            result = db.execute(
                delete(BaselineRecord).where(
                    BaselineRecord.project == key.project,
                    BaselineRecord.benchmark == key.benchmark,
                )
            )
            return bool(result.rowcount)

    def list(self, project: str | None = None) -> list[Baseline]:
        stmt = select(BaselineRecord).order_by(BaselineRecord.project, BaselineRecord.benchmark)
        if project is not None:
            stmt = stmt.where(BaselineRecord.project == project)
        with self.db_session_factory() as db:
            rows = db.execute(stmt).scalars().all()
        return [self._to_baseline(r) for r in rows]


class JsonFileBaselineStore(BaselineStore):
    """Baselines kept in one JSON document, suitable for committing to a repo."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        try:
            content = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise BaselineStoreError(f"cannot read baseline file {self.path}: {exc}") from exc
        if not isinstance(content, dict):
            raise BaselineStoreError(f"baseline file must contain a mapping: {self.path}")
        items = content.get("baselines", {})
        if not isinstance(items, dict):
            raise BaselineStoreError(f"baseline file 'baselines' entry must be a mapping: {self.path}")
        return items

    def _write(self, items: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps({"version": 1, "baselines": dict(sorted(items.items()))}, indent=2, sort_keys=False)
        fd, tmp_name = tempfile.mkstemp(prefix=".baselines-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload + "\n")
            os.replace(tmp_name, self.path)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _to_baseline(self, slug: str, item: dict) -> Baseline:
        try:
            recorded = item.get("recorded_at")
            return Baseline(
                key=BaselineKey.parse(slug),
                duration_ms=float(item["duration_ms"]),
                recorded_at=_as_utc(datetime.fromisoformat(recorded)) if recorded else _utcnow(),
                source=str(item.get("source", "")),
                host=str(item.get("host", "")),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise BaselineStoreError(f"corrupt baseline entry {slug!r} in {self.path}: {exc}") from exc

    def get(self, key: BaselineKey) -> Baseline | None:
        item = self._read().get(key.slug())
        return self._to_baseline(key.slug(), item) if item is not None else None

    def put(self, baseline: Baseline) -> None:
        duration = _check_duration(baseline.duration_ms)
        items = self._read()
        items[baseline.key.slug()] = {
            "duration_ms": duration,
            "recorded_at": baseline.recorded_at.isoformat(),
            "source": baseline.source,
            "host": baseline.host,
        }
        self._write(items)

    def delete(self, key: BaselineKey) -> bool:
        items = self._read()
        if items.pop(key.slug(), None) is None:
            return False
        self._write(items)
        return True

    def list(self, project: str | None = None) -> list[Baseline]:
        baselines = [self._to_baseline(slug, item) for slug, item in sorted(self._read().items())]
        if project is not None:
            baselines = [b for b in baselines if b.key.project == project]
        return baselines


def build_baseline_store(cfg, db_session_factory=None) -> BaselineStore:
    if cfg.baseline.backend == "json":
        return JsonFileBaselineStore(cfg.baseline.json_path)
    factory = db_session_factory or init_db(cfg.database.url)
    return SqlBaselineStore(factory)
