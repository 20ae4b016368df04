"""
Sentry Integration Module.

Error tracking for the API. Learning loop failures never reach the
user, so Sentry (and the logs) is the only place they show up.

Bills carry patient names; events are scrubbed of them before sending.
"""

import logging
import os
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from ml.audit.audit_engine import AuditResult

logger = logging.getLogger(__name__)

FILTERED = "[Filtered]"

# Client went away mid-request; nothing to fix on our side
IGNORED_EXCEPTIONS = frozenset({
    "ConnectionResetError",
    "BrokenPipeError",
    "ClientDisconnected",
})

SENSITIVE_HEADERS = ("authorization", "x-api-key", "cookie")
SENSITIVE_FIELDS = ("patient_name", "patientName", "transcript", "complaintText", "complaint_text")

UNTRACED_ENDPOINTS = ("/health", "/metrics", "/favicon.ico")


def init_sentry(
    dsn: Optional[str] = None,
    environment: Optional[str] = None,
    release: Optional[str] = None,
    traces_sample_rate: float = 0.1,
) -> bool:
    """
    Initialize Sentry if a DSN is configured.

    Args:
        dsn: Sentry DSN. Falls back to SENTRY_DSN env var.
        environment: Environment name (production, staging, development).
        release: Application version.
        traces_sample_rate: Performance transaction sample rate.

    Returns:
        bool: True if Sentry was initialized.
    """
    sentry_dsn = dsn or os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.warning("Sentry DSN not configured. Error tracking disabled.")
        return False

    env = environment or os.getenv("ENVIRONMENT", "development")

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        release=f"billbiopsy-backend@{release or os.getenv('APP_VERSION', '1.0.0')}",
        traces_sample_rate=traces_sample_rate,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            StarletteIntegration(transaction_style="endpoint"),
            LoggingIntegration(level=logging.WARNING, event_level=logging.ERROR),
        ],
        send_default_pii=False,
        before_send=before_send_handler,
        before_send_transaction=before_send_transaction_handler,
    )

    logger.info(f"Sentry initialized for environment: {env}")
    return True


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: FILTERED if key in SENSITIVE_FIELDS else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def before_send_handler(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Drop client disconnects; strip credentials and patient details."""
    if "exc_info" in hint:
        exc_type = hint["exc_info"][0]
        if exc_type.__name__ in IGNORED_EXCEPTIONS:
            return None

    request = event.get("request")
    if request:
        headers = request.get("headers") or {}
        for header in SENSITIVE_HEADERS:
            if header in headers:
                headers[header] = FILTERED
        if "data" in request:
            request["data"] = _scrub(request["data"])

    if "extra" in event:
        event["extra"] = _scrub(event["extra"])

    return event


def before_send_transaction_handler(
    event: Dict[str, Any],
    hint: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Skip health check and metrics transactions."""
    transaction_name = event.get("transaction", "")
    if any(endpoint in transaction_name for endpoint in UNTRACED_ENDPOINTS):
        return None
    return event


def capture_learning_failure(error: Exception, result: AuditResult) -> Optional[str]:
    """
    Report a failed learning pass.

    The bill is attached as context without the patient's name.

    Returns:
        Sentry event ID if captured, None otherwise.
    """
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("component", "learning_loop")
        scope.set_tag("tier", result.tier.value)
        scope.set_context("bill", {
            "hospital_name": result.hospital_name,
            "city": result.city,
            "line_items": len(result.line_items),
            "flagged_items": len(result.flagged_items),
        })
        return sentry_sdk.capture_exception(error)
