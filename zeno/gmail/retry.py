"""Network retry with exponential backoff for Gmail API calls."""

from __future__ import annotations

import logging
import socket
import time
from typing import Any

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

# Transient error types that should trigger a retry
_TRANSIENT_EXCEPTIONS: tuple[type[BaseException], ...] = (
    socket.gaierror,
    ConnectionError,
    TimeoutError,
)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds


def is_retryable(exc: BaseException) -> bool:
    """True for DNS/connection/timeout failures and 429/5xx responses."""
    if isinstance(exc, _TRANSIENT_EXCEPTIONS):
        return True
    if isinstance(exc, HttpError):
        return exc.resp.status in _RETRYABLE_STATUS_CODES
    # httplib2 wraps socket errors in its own exception hierarchy
    cause = exc.__cause__ or exc.__context__
    return isinstance(cause, _TRANSIENT_EXCEPTIONS)


def execute_with_retry(
    request: Any,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    operation: str = "API call",
    sleep=time.sleep,
) -> Any:
    """Run ``request.execute()``, retrying transient failures.

    The delay doubles after every failed attempt. Client errors (4xx other
    than 429) are raised on the first attempt.
    """
    attempts = 1 + max_retries
    for attempt in range(attempts):
        try:
            return request.execute()
        except Exception as exc:
            if not is_retryable(exc) or attempt == attempts - 1:
                if attempt > 0:
                    logger.error("%s failed after %d attempts: %s", operation, attempt + 1, exc)
                raise
            delay = base_delay * (2**attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                operation,
                attempt + 1,
                attempts,
                delay,
                exc,
            )
            sleep(delay)
