"""Status and record sinks.

Both sinks always write locally (``STATUS_FILE`` / ``DATASET_FILE``) and,
when a platform client is attached, forward to the hosting platform.
Forwarding failures are logged and never interrupt the run.
"""
from __future__ import annotations

import time
from typing import List, Optional

from . import config
from .errors import PlatformError
from .hosting import ApifyClient
from .logging_utils import _scraper_event
from .models import RecordEntry
from .utils import append_json_line, log_line, short_error_message


class StatusReporter:
    """Human-readable run progress. Advisory only; never control flow."""

    def __init__(self, client: Optional[ApifyClient] = None) -> None:
        self.client = client
        self.history: List[str] = []
        self.terminal_message: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.terminal_message is not None

    def _emit(self, message: str, terminal: bool) -> None:
        self.history.append(message)
        log_line(f"[STATUS] {message}")
        try:
            append_json_line(
                config.STATUS_FILE,
                {"ts": time.time(), "message": message, "terminal": terminal},
            )
        except OSError as exc:
            _scraper_event("sink", phase="status_file", error=short_error_message(exc))

        if self.client is None:
            return
        try:
            self.client.set_status_message(message, terminal=terminal)
        except PlatformError as exc:
            _scraper_event("sink", phase="status_platform", error=short_error_message(exc))

    def report(self, message: str) -> None:
        if self.finished:
            _scraper_event("sink", phase="status_after_terminal", message=message)
            return
        self._emit(message, terminal=False)

    def terminal(self, message: str) -> bool:
        """Emit the run's final status. Returns ``False`` if one was already sent."""

        if self.finished:
            _scraper_event(
                "sink",
                phase="duplicate_terminal",
                message=message,
                first=self.terminal_message,
            )
            return False
        self.terminal_message = message
        self._emit(message, terminal=True)
        return True


class RecordSink:
    """Persist each record as soon as its row is done."""

    def __init__(self, client: Optional[ApifyClient] = None) -> None:
        self.client = client
        self.pushed = 0

    def push(self, record: RecordEntry) -> None:
        payload = record.to_dict()
        try:
            append_json_line(config.DATASET_FILE, payload)
        except OSError as exc:
            _scraper_event(
                "sink",
                phase="dataset_file",
                document_no=record.document_no,
                error=short_error_message(exc),
            )
        if self.client is not None:
            try:
                self.client.push_items([payload])
            except PlatformError as exc:
                _scraper_event(
                    "sink",
                    phase="dataset_platform",
                    document_no=record.document_no,
                    error=short_error_message(exc),
                )
        self.pushed += 1


__all__ = ["RecordSink", "StatusReporter"]
