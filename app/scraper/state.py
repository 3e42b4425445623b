"""Helpers for persisting and restoring scraper checkpoints and job input.

Hosted runs keep both in the platform key-value store (``STATE`` and
``INPUT`` records); local runs use ``STATE_FILE`` and ``INPUT_FILE``.
"""

from __future__ import annotations

import json
import time
from typing import Any, Dict, Optional

from . import config
from .errors import CheckpointReadFailure, PlatformError
from .hosting import ApifyClient
from .models import ResumeCheckpoint, SearchRange
from .utils import load_json_file, log_line, save_json_file

STATE_KEY = "STATE"
INPUT_KEY = "INPUT"


def _read_state_payload(client: Optional[ApifyClient]) -> Any:
    if client is not None:
        return client.get_json_record(STATE_KEY)
    return load_json_file(config.STATE_FILE)


def load_checkpoint(client: Optional[ApifyClient] = None) -> Optional[ResumeCheckpoint]:
    """Load the persisted checkpoint, or ``None`` when there is none.

    Raises ``CheckpointReadFailure`` when the checkpoint exists but cannot
    be read; callers treat that as "use the full range".
    """

    try:
        payload = _read_state_payload(client)
    except (OSError, ValueError, PlatformError) as exc:
        raise CheckpointReadFailure(f"Checkpoint unreadable: {exc}") from exc

    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise CheckpointReadFailure(f"Checkpoint is not an object: {type(payload).__name__}")

    last_processed = str(payload.get("lastProcessedDate") or "").strip()
    if not last_processed:
        return None
    return ResumeCheckpoint(last_processed_date=last_processed)


def save_checkpoint(last_processed_date: str, client: Optional[ApifyClient] = None) -> None:
    """Persist ``lastProcessedDate`` so the next run resumes after it."""

    payload: Dict[str, Any] = {
        "lastProcessedDate": last_processed_date,
        "savedAtTs": time.time(),
    }
    if client is not None:
        client.put_record(STATE_KEY, json.dumps(payload), "application/json")
    else:
        save_json_file(config.STATE_FILE, payload)
    log_line(f"[STATE] Checkpoint saved: lastProcessedDate={last_processed_date}")


def _range_from_payload(payload: Any) -> Optional[SearchRange]:
    if not isinstance(payload, dict):
        return None
    return SearchRange(
        start_date=str(payload.get("startDate") or "").strip(),
        end_date=str(payload.get("endDate") or "").strip(),
    )


def load_job_input(client: Optional[ApifyClient] = None) -> SearchRange:
    """Return the requested search range.

    Order: platform ``INPUT`` record (hosted), then ``INPUT_FILE``, then an
    empty range. Unreadable sources are logged and skipped.
    """

    if client is not None:
        try:
            search_range = _range_from_payload(client.get_json_record(INPUT_KEY))
        except (ValueError, PlatformError) as exc:
            log_line(f"[STATE] Platform input unreadable: {exc}")
            search_range = None
        if search_range is not None:
            return search_range

    try:
        search_range = _range_from_payload(load_json_file(config.INPUT_FILE))
    except (OSError, ValueError) as exc:
        log_line(f"[STATE] Input file {config.INPUT_FILE} unreadable: {exc}")
        search_range = None
    if search_range is not None:
        return search_range

    return SearchRange()


__all__ = [
    "INPUT_KEY",
    "STATE_KEY",
    "load_checkpoint",
    "load_job_input",
    "save_checkpoint",
]
