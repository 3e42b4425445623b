"""Failure taxonomy for the recorder pipeline.

Each exception carries a stable ``error_code`` that is written into the
structured logs and the run telemetry, so a failed row or run can be
explained after the fact. Only ``FatalInitError`` and an exhausted
``SearchFailure`` are allowed to end a run; the other classes are handled
at the narrowest scope that keeps the batch going.
"""
from __future__ import annotations

from typing import Optional


class ErrorCode:
    BROWSER_LAUNCH = "browser_launch_failed"
    SEARCH_CONTROLS = "search_controls_unavailable"
    SEARCH_TIMEOUT = "search_network_timeout"
    SEARCH_NAVIGATION = "search_navigation_failed"
    ROW_EXPAND = "row_expand_timeout"
    ROW_EXTRACT = "row_extract_failed"
    ROW_IDENTIFIER = "row_identifier_missing"
    CAPTURE_CONTROL = "capture_control_missing"
    CAPTURE_VIEWER = "capture_viewer_timeout"
    CAPTURE_DIALOG = "capture_dialog_failed"
    CAPTURE_FRAME = "capture_frame_missing"
    CAPTURE_PAYLOAD = "capture_payload_invalid"
    CAPTURE_UPLOAD = "capture_upload_failed"
    CHECKPOINT_READ = "checkpoint_unreadable"
    PLATFORM_HTTP = "platform_http_error"
    PLATFORM_NETWORK = "platform_network_error"
    INTERNAL = "internal_error"


class ScraperError(Exception):
    """Base class for pipeline failures."""

    default_code = ErrorCode.INTERNAL

    def __init__(self, message: str, *, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.error_code = error_code or self.default_code


class FatalInitError(ScraperError):
    """The browser session could not be started."""

    default_code = ErrorCode.BROWSER_LAUNCH


class SearchFailure(ScraperError):
    """The date-range search could not be submitted or never settled."""

    default_code = ErrorCode.SEARCH_NAVIGATION


class RowFailure(ScraperError):
    default_code = ErrorCode.ROW_EXTRACT

    def __init__(
        self,
        message: str,
        *,
        row_index: int,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.row_index = row_index


class CaptureFailure(ScraperError):
    default_code = ErrorCode.CAPTURE_PAYLOAD

    def __init__(
        self,
        message: str,
        *,
        document_no: str = "",
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.document_no = document_no


class CheckpointReadFailure(ScraperError):
    default_code = ErrorCode.CHECKPOINT_READ


class PlatformError(ScraperError):
    """A hosting-platform API call failed."""

    default_code = ErrorCode.PLATFORM_HTTP

    def __init__(
        self,
        message: str,
        *,
        http_status: Optional[int] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message, error_code=error_code)
        self.http_status = http_status


__all__ = [
    "ErrorCode",
    "ScraperError",
    "FatalInitError",
    "SearchFailure",
    "RowFailure",
    "CaptureFailure",
    "CheckpointReadFailure",
    "PlatformError",
]
