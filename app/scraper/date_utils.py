from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from . import config

# Checkpoints written by other tools are not always in portal format.
_CHECKPOINT_FORMATS: Iterable[str] = (
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
)


def parse_portal_date(value: str) -> date:
    """Parse a ``MM/DD/YYYY`` date; raises ``ValueError`` otherwise."""

    return datetime.strptime((value or "").strip(), config.DATE_FORMAT).date()


def format_portal_date(value: date) -> str:
    return value.strftime(config.DATE_FORMAT)


def parse_checkpoint_date(value: str) -> Optional[date]:
    """Return the date stored in a checkpoint, or ``None`` if unparseable."""

    candidate = (value or "").strip()
    if not candidate:
        return None

    for fmt in _CHECKPOINT_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(candidate.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def resume_start_date(last_processed: str) -> Optional[str]:
    """Return the day after *last_processed* in portal format.

    >>> resume_start_date("06/30/2024")
    '07/01/2024'
    """

    parsed = parse_checkpoint_date(last_processed)
    if parsed is None:
        return None
    return format_portal_date(parsed + timedelta(days=1))


def validate_search_dates(start_date: str, end_date: str) -> None:
    """Raise ``ValueError`` unless both dates parse and start <= end."""

    try:
        start = parse_portal_date(start_date)
    except ValueError as exc:
        raise ValueError(f"startDate {start_date!r} is not MM/DD/YYYY") from exc
    try:
        end = parse_portal_date(end_date)
    except ValueError as exc:
        raise ValueError(f"endDate {end_date!r} is not MM/DD/YYYY") from exc
    if start > end:
        raise ValueError(f"startDate {start_date} is after endDate {end_date}")


def run_date_key(now: Optional[datetime] = None) -> str:
    """Return the UTC ``YYYY-MM-DD`` key used to name export files."""

    return (now or datetime.utcnow()).strftime("%Y-%m-%d")
