from __future__ import annotations

import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from .errors import ErrorCode
from .logging_utils import _scraper_event

T = TypeVar("T")

RETRYABLE_ERROR_CODES = {
    ErrorCode.SEARCH_CONTROLS,
    ErrorCode.SEARCH_TIMEOUT,
    ErrorCode.SEARCH_NAVIGATION,
    ErrorCode.PLATFORM_NETWORK,
}

NON_RETRYABLE_ERROR_CODES = {
    ErrorCode.BROWSER_LAUNCH,
    ErrorCode.CHECKPOINT_READ,
    # Row and capture failures are contained in-page, never retried globally.
    ErrorCode.ROW_EXPAND,
    ErrorCode.ROW_EXTRACT,
    ErrorCode.ROW_IDENTIFIER,
    ErrorCode.CAPTURE_CONTROL,
    ErrorCode.CAPTURE_VIEWER,
    ErrorCode.CAPTURE_DIALOG,
    ErrorCode.CAPTURE_FRAME,
    ErrorCode.CAPTURE_PAYLOAD,
    ErrorCode.CAPTURE_UPLOAD,
}


def compute_backoff_seconds(attempt_index: int) -> float:
    """Return a capped exponential backoff for the given attempt (1-based)."""

    return float(min(2 ** max(0, attempt_index - 1), 30))


def decide_retry(
    attempt_index: int,
    max_attempts: int,
    *,
    error_code: Optional[str] = None,
    http_status: Optional[int] = None,
    operation: str = "",
) -> bool:
    """Decide whether a failed attempt should be retried."""

    code = (error_code or "").strip()

    if attempt_index >= max_attempts:
        kind, will_retry = "capped", False
    elif code in NON_RETRYABLE_ERROR_CODES:
        kind, will_retry = "non_retryable", False
    elif code in RETRYABLE_ERROR_CODES:
        kind, will_retry = "retryable", True
    elif http_status is not None and (http_status >= 500 or http_status == 429):
        kind, will_retry = "retryable", True
    else:
        kind, will_retry = ("unknown" if code else "missing_error_code"), False

    _scraper_event(
        "state",
        phase="retry_decision",
        operation=operation or None,
        kind=kind,
        error_code=code or None,
        http_status=http_status,
        attempt=attempt_index,
        max_attempts=max_attempts,
        will_retry=will_retry,
    )
    return will_retry


def run_with_retries(
    operation: Callable[[], T],
    *,
    attempts: int,
    backoff_seconds: float,
    retry_on: Tuple[Type[BaseException], ...],
    label: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run *operation* up to *attempts* times with a fixed pause in between.

    Only exceptions in *retry_on* are retried, and only while
    :func:`decide_retry` agrees. The last failure is re-raised unchanged.
    """

    effective_attempts = max(1, attempts)
    for attempt in range(1, effective_attempts + 1):
        try:
            return operation()
        except retry_on as exc:
            should_retry = decide_retry(
                attempt,
                effective_attempts,
                error_code=getattr(exc, "error_code", None),
                http_status=getattr(exc, "http_status", None),
                operation=label,
            )
            if not should_retry:
                raise
            _scraper_event(
                "state",
                phase="retry_wait",
                operation=label,
                attempt=attempt,
                backoff_seconds=backoff_seconds,
                error=str(exc),
            )
            sleep(backoff_seconds)

    raise RuntimeError(f"{label}: retry loop exhausted without a result")


__all__ = [
    "RETRYABLE_ERROR_CODES",
    "NON_RETRYABLE_ERROR_CODES",
    "compute_backoff_seconds",
    "decide_retry",
    "run_with_retries",
]
