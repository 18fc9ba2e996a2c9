from __future__ import annotations

import os

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_fixed

from buildgate.core.compare.comparator import ComparisonResult
from buildgate.core.compare.report import advisory_message
from buildgate.core.runtime.errors import classify_error, compact_error_summary
from buildgate.core.telemetry.logging import get_logger

logger = get_logger("buildgate.notify")


def _is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, Exception):
        return False
    return classify_error(exc, category="notification", component="webhook").retryable


def build_payload(result: ComparisonResult, *, label: str | None = None, git_ref: str = "") -> dict:
    text = advisory_message(result, label) or f"Build time for {label or 'build'} is within thresholds."
    if git_ref:
        text = f"{text} (ref {git_ref})"
    return {"text": text, "label": label, "git_ref": git_ref, **result.as_dict()}


class WebhookNotifier:
    def __init__(self, url: str, *, timeout_seconds: float = 5.0, attempts: int = 2, wait_seconds: float = 0.2) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._post = retry(
            stop=stop_after_attempt(max(1, attempts)),
            wait=wait_fixed(wait_seconds),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )(self._post_once)

    def _post_once(self, payload: dict) -> None:
        with httpx.Client(timeout=self.timeout_seconds) as client:
            resp = client.post(self.url, json=payload)
            resp.raise_for_status()

    def send(self, payload: dict) -> bool:
        try:
            self._post(payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning("notification_failed", error=compact_error_summary(exc), verdict=payload.get("verdict"))
            return False
        logger.info("notification_sent", verdict=payload.get("verdict"))
        return True


def notifier_from_config(notify_cfg) -> WebhookNotifier | None:
    if not notify_cfg.enabled:
        return None
    url = os.getenv(notify_cfg.webhook_url_env, "").strip()
    if not url:
        logger.warning("notification_skipped", reason="missing_webhook_url", env=notify_cfg.webhook_url_env)
        return None
    return WebhookNotifier(url, timeout_seconds=notify_cfg.timeout_seconds, attempts=notify_cfg.retry_attempts)


def notify_result(notify_cfg, result: ComparisonResult, *, label: str | None = None, git_ref: str = "") -> bool:
    if result.verdict.value not in notify_cfg.notify_on:
        return False
    notifier = notifier_from_config(notify_cfg)
    if notifier is None:
        return False
    return notifier.send(build_payload(result, label=label, git_ref=git_ref))
