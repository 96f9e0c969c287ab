"""Sentry initialisation for the token engine API."""

import structlog
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = structlog.get_logger()

# Inbound auth headers and the deployer key on outbound calls
_SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}


def _redact_headers(headers: dict) -> None:
    for header in list(headers):
        if header.lower() in _SENSITIVE_HEADERS:
            headers[header] = "[REDACTED]"


def _scrub_sensitive_data(event: dict, hint: dict) -> dict:
    """Redact credentials from the request and from deployer breadcrumbs."""
    _redact_headers(event.get("request", {}).get("headers", {}))
    for crumb in event.get("breadcrumbs", {}).get("values", []):
        data = crumb.get("data") or {}
        if isinstance(data.get("headers"), dict):
            _redact_headers(data["headers"])
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "development",
    release: str | None = None,
) -> None:
    """No-op without a DSN, so the app can call it unconditionally."""
    if not dsn:
        logger.warning("sentry.disabled", reason="SENTRY_DSN not set")
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=0.1 if environment == "production" else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            HttpxIntegration(),
        ],
        send_default_pii=False,
        before_send=_scrub_sensitive_data,
    )
    sentry_sdk.set_tag("service", "token-engine")
    logger.info("sentry.initialized", environment=environment)
