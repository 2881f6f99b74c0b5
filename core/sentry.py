"""Sentry error tracking for the lookup service.

Only failures worth paging about reach Sentry: caller mistakes (4xx-class
LookupServiceErrors) are dropped in ``before_send``. Every event is tagged
with the request id that also appears in the logs.
"""

import logging
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from core.exceptions import LookupServiceError
from core.logging import get_request_id

logger = logging.getLogger(__name__)

BREADCRUMB_CATEGORY = "genius"


def drop_client_errors(event: dict, hint: dict) -> dict | None:
    """Sentry ``before_send`` hook discarding errors the caller caused."""
    exc_info = hint.get("exc_info")
    if exc_info:
        error = exc_info[1]
        if isinstance(error, LookupServiceError) and error.status_code < 500:
            return None
    return event


def init_sentry(
    dsn: str | None,
    environment: str = "production",
    release: str | None = None,
) -> None:
    """Initialize the Sentry SDK when a DSN is configured.

    Args:
        dsn: Sentry DSN. Empty or None leaves Sentry disabled.
        environment: Deployment environment name
        release: Optional release version string
    """
    if not dsn:
        logger.info("SENTRY_DSN not set, error tracking disabled")
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[FastApiIntegration()],
        before_send=drop_client_errors,
        traces_sample_rate=0.2,
    )
    logger.info(f"Sentry initialized (environment: {environment}, release: {release})")


def add_genius_breadcrumb(
    operation: str,
    data: dict[str, Any] | None = None,
    level: str = "info",
) -> None:
    """Record a Genius API or cache step leading up to a potential error."""
    sentry_sdk.add_breadcrumb(
        category=BREADCRUMB_CATEGORY,
        message=operation,
        data=data or {},
        level=level,
    )


def capture_exception(
    error: Exception,
    context: dict[str, Any] | None = None,
) -> None:
    """Report an unexpected error, tagged with the current request id.

    Args:
        error: The exception to report
        context: Lookup parameters attached as the "lookup" context
    """
    sentry_sdk.set_tag("request_id", get_request_id())
    if context:
        sentry_sdk.set_context("lookup", context)

    sentry_sdk.capture_exception(error)
