from __future__ import annotations

from typing import Literal

from . import config
from .logging_utils import _scraper_event
from .utils import log_line

Entrypoint = Literal["ui", "cli", "tests"]


def _raise_config_error(
    message: str, *, entrypoint: Entrypoint, error: str
) -> None:
    _scraper_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def _clamp(field_name: str, value: int, adjusted: int, *, entrypoint: Entrypoint) -> None:
    _scraper_event(
        "state",
        phase="config",
        context="runtime_validation",
        kind="config_adjustment",
        field=field_name,
        value=value,
        adjusted=adjusted,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {field_name}={value} is out of range; clamping to {adjusted}.")
    setattr(config, field_name, adjusted)


def validate_runtime_config(entrypoint: Entrypoint) -> None:
    """Validate runtime configuration for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Non-fatal adjustments (search attempts, retry backoff) are logged and
    applied to ``config`` in place.
    """

    timeout_fields = [
        ("NAV_TIMEOUT_SECONDS", config.NAV_TIMEOUT_SECONDS),
        ("SELECTOR_TIMEOUT_SECONDS", config.SELECTOR_TIMEOUT_SECONDS),
        ("LAUNCH_TIMEOUT_MS", config.LAUNCH_TIMEOUT_MS),
        ("DEFAULT_TIMEOUT_MS", config.DEFAULT_TIMEOUT_MS),
        ("CLICK_TIMEOUT_MS", config.CLICK_TIMEOUT_MS),
        ("BACKDROP_TIMEOUT_MS", config.BACKDROP_TIMEOUT_MS),
        ("DETAIL_TIMEOUT_MS", config.DETAIL_TIMEOUT_MS),
        ("COLLAPSE_TIMEOUT_MS", config.COLLAPSE_TIMEOUT_MS),
        ("VIEWER_TIMEOUT_MS", config.VIEWER_TIMEOUT_MS),
        ("PRINT_DIALOG_TIMEOUT_MS", config.PRINT_DIALOG_TIMEOUT_MS),
        ("PRINT_FRAME_TIMEOUT_MS", config.PRINT_FRAME_TIMEOUT_MS),
        ("RESULTS_TIMEOUT_MS", config.RESULTS_TIMEOUT_MS),
    ]

    for field_name, value in timeout_fields:
        if value <= 0:
            _raise_config_error(
                f"{field_name} must be greater than zero.",
                entrypoint=entrypoint,
                error="invalid_timeout",
            )

    if config.ROW_LIMIT < 0:
        _raise_config_error(
            "ROW_LIMIT must be zero (all rows) or positive.",
            entrypoint=entrypoint,
            error="row_limit_invalid",
        )

    if config.SEARCH_MAX_ATTEMPTS < 1:
        _clamp("SEARCH_MAX_ATTEMPTS", config.SEARCH_MAX_ATTEMPTS, 1, entrypoint=entrypoint)

    if config.SEARCH_RETRY_BACKOFF_SECONDS < 0:
        _clamp(
            "SEARCH_RETRY_BACKOFF_SECONDS",
            config.SEARCH_RETRY_BACKOFF_SECONDS,
            0,
            entrypoint=entrypoint,
        )


__all__ = ["validate_runtime_config", "Entrypoint"]
