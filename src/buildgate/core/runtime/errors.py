from __future__ import annotations

import re
from dataclasses import dataclass


class BuildGateError(Exception):
    """Base class for BuildGate failures."""


class InvalidInput(BuildGateError, ValueError):
    """Baseline, measurement or thresholds cannot be compared."""


class BaselineNotFound(BuildGateError, LookupError):
    def __init__(self, project: str, benchmark: str) -> None:
        super().__init__(f"no baseline recorded for {project}/{benchmark}")
        self.project = project
        self.benchmark = benchmark


class BaselineStoreError(BuildGateError):
    """Stored baselines could not be read or parsed."""


class MeasurementError(BuildGateError, RuntimeError):
    """The timed build did not complete successfully."""


@dataclass(slots=True)
class ErrorInfo:
    category: str
    component: str
    error_type: str
    message_signature: str
    retryable: bool
    http_status: int | None = None


def _normalize_message(message: str, max_len: int = 180) -> str:
    msg = message.lower()
    msg = re.sub(r"\s+", " ", msg)
    msg = re.sub(r"\d+", "#", msg)
    return msg.strip()[:max_len]


def _compact_message(message: str, max_len: int = 220) -> str:
    msg = re.sub(r"\s+", " ", message)
    return msg.strip()[:max_len]


def classify_error(exc: Exception, *, category: str, component: str) -> ErrorInfo:
    name = exc.__class__.__name__.lower()
    normalized = _normalize_message(str(exc))

    retryable = True
    lowered = f"{name} {normalized}"
    if isinstance(exc, BuildGateError):
        retryable = False
    if any(k in lowered for k in ["auth", "unauthorized", "forbidden", "badrequest", "permission", "invalid"]):
        retryable = False
    if any(k in lowered for k in ["timeout", "temporar", "connection", "reset", "unavailable"]):
        retryable = True

    status = None
    response = getattr(exc, "response", None)
    if response is not None and isinstance(getattr(response, "status_code", None), int):
        status = int(response.status_code)
    else:
        m = re.search(r"\b(4\d\d|5\d\d)\b", str(exc))
        if m:
            status = int(m.group(1))
    if status is not None:
        retryable = status >= 500 or status in {408, 429}

    return ErrorInfo(
        category=category,
        component=component,
        error_type=exc.__class__.__name__,
        message_signature=normalized,
        retryable=retryable,
        http_status=status,
    )


def compact_error_summary(exc: Exception, max_len: int = 220) -> str:
    return f"{exc.__class__.__name__}: {_compact_message(str(exc), max_len=max_len)}"
