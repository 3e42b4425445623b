"""Pipe-delimited CSV export of the run's records."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from . import config
from .date_utils import run_date_key
from .errors import PlatformError
from .hosting import ApifyClient
from .logging_utils import _scraper_event
from .models import RecordEntry
from .utils import log_line, short_error_message

# (column header, RecordEntry attribute); order is the file's column order.
EXPORT_FIELDS = (
    ("Document No", "document_no"),
    ("Recorded Date", "recorded_date"),
    ("Document Type", "document_type"),
    ("Consideration", "consideration"),
    ("Party 1", "party1"),
    ("Party 2", "party2"),
    ("Associated Documents", "associated_documents"),
    ("Notes", "notes"),
    ("Legals", "legals"),
    ("PDF URL", "pdf_location"),
)
EXPORT_COLUMNS = [header for header, _ in EXPORT_FIELDS]
_LIST_ATTRIBUTES = {"party1", "party2", "associated_documents", "legals"}


def export_filename(date_key: str) -> str:
    return f"{config.EXPORT_PREFIX}_{date_key}.csv"


def _cell(record: RecordEntry, attribute: str) -> str:
    value = getattr(record, attribute)
    if attribute in _LIST_ATTRIBUTES:
        return config.LIST_DELIMITER.join(value)
    return value or ""


def records_to_frame(records: Iterable[RecordEntry]) -> pd.DataFrame:
    rows = [
        {header: _cell(record, attribute) for header, attribute in EXPORT_FIELDS}
        for record in records
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_records(
    records: Sequence[RecordEntry],
    date_key: Optional[str] = None,
    client: Optional[ApifyClient] = None,
    *,
    csv_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Write *records* to ``CSV_DIR/OH-Medina_<date_key>.csv``.

    Returns the written path, or ``None`` when there is nothing to export or
    the local write fails (logged). When *client* is given the file is also
    stored on the platform under its file name; an upload failure is logged
    and the local file kept.
    """

    if not records:
        log_line("[EXPORT] No records to export.")
        return None

    key = date_key or run_date_key()
    target_dir = Path(csv_dir or config.CSV_DIR)
    path = target_dir / export_filename(key)

    log_line(f"[EXPORT] Exporting {len(records)} records to CSV...")
    frame = records_to_frame(records)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        frame.to_csv(path, sep=config.EXPORT_DELIMITER, index=False, encoding="utf-8")
    except OSError as exc:
        # Records already reached the record sink; the run still succeeds.
        _scraper_event("error", phase="export", path=str(path), error=short_error_message(exc))
        return None
    log_line(f"[EXPORT] CSV saved locally at: {path}")

    if client is not None:
        try:
            client.put_record(path.name.replace("/", "-"), path.read_bytes(), "text/csv")
            log_line("[EXPORT] CSV uploaded to the key-value store.")
        except PlatformError as exc:
            _scraper_event("error", phase="export_upload", path=str(path), error=short_error_message(exc))

    return path


def _split_list(cell: str) -> List[str]:
    return [part.strip() for part in (cell or "").split(config.LIST_DELIMITER) if part.strip()]


def read_export(path: Path) -> List[RecordEntry]:
    """Parse an export file back into records (list cells split on ``;``)."""

    frame = pd.read_csv(
        path,
        sep=config.EXPORT_DELIMITER,
        dtype=str,
        keep_default_na=False,
    )
    records: List[RecordEntry] = []
    for row in frame.to_dict(orient="records"):
        values = {}
        for header, attribute in EXPORT_FIELDS:
            cell = row.get(header, "")
            values[attribute] = _split_list(cell) if attribute in _LIST_ATTRIBUTES else cell
        records.append(RecordEntry(**values))
    return records


__all__ = [
    "EXPORT_COLUMNS",
    "EXPORT_FIELDS",
    "export_filename",
    "export_records",
    "read_export",
    "records_to_frame",
]
