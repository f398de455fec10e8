"""Retry policy shared by the Google API wrappers."""

from __future__ import annotations

import json

from google.api_core import exceptions
from google.api_core import retry
from google.auth import exceptions as auth_exceptions
from googleapiclient.errors import HttpError

# Quota and server-side failures that are worth another attempt.
RETRYABLE_STATUSES = {429, 500, 502, 503, 504}


def is_retryable(exc: Exception) -> bool:
    """Retry predicate for Google API calls."""
    if isinstance(exc, HttpError):
        return exc.resp.status in RETRYABLE_STATUSES
    return isinstance(exc, (
        exceptions.InternalServerError,
        exceptions.TooManyRequests,
        exceptions.ServiceUnavailable,
        auth_exceptions.TransportError,
        ConnectionError,
    ))


DEFAULT_RETRY = retry.Retry(
    predicate=is_retryable,
    initial=1.0,
    maximum=10.0,
    multiplier=2.0,
    timeout=60.0,
)


def execute(request, retry_policy: retry.Retry | None = DEFAULT_RETRY):
    """Execute a googleapiclient request, retrying transient failures."""
    if retry_policy is None:
        return request.execute()
    return retry_policy(request.execute)()


def http_status(exc: HttpError) -> int:
    return int(getattr(exc.resp, "status", 0) or 0)


def error_reasons(exc: HttpError) -> list[str]:
    """Extract the ``reason`` strings from a Google API error body."""
    details = getattr(exc, "error_details", None)
    if not isinstance(details, list):
        try:
            details = json.loads(exc.content).get("error", {}).get("errors", [])
        except (TypeError, ValueError, AttributeError):
            details = []
    return [d.get("reason", "") for d in details if isinstance(d, dict)]
