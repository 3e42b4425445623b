"""Value types flowing through the recorder pipeline."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, Tuple


def clean_values(values: Iterable[str | None]) -> Tuple[str, ...]:
    """Trim every value and drop the ones left empty, keeping DOM order."""

    cleaned = []
    for value in values:
        text = (value or "").strip()
        if text:
            cleaned.append(text)
    return tuple(cleaned)


@dataclass
class SearchRange:
    """Inclusive recorded-date range, both ends formatted ``MM/DD/YYYY``."""

    start_date: str = ""
    end_date: str = ""


@dataclass(frozen=True)
class RecordEntry:
    """One search-result row, flattened.

    Instances are built once the row is fully read (document capture
    included) and are never modified afterwards. List fields are stored as
    tuples of non-blank strings; ``pdf_location`` is ``""`` when no document
    was captured.
    """

    document_no: str
    recorded_date: str = ""
    document_type: str = ""
    consideration: str = ""
    notes: str = ""
    party1: Tuple[str, ...] = ()
    party2: Tuple[str, ...] = ()
    associated_documents: Tuple[str, ...] = ()
    legals: Tuple[str, ...] = ()
    pdf_location: str = ""

    def __post_init__(self) -> None:
        if not (self.document_no or "").strip():
            raise ValueError("RecordEntry requires a non-empty document_no")
        for name in ("party1", "party2", "associated_documents", "legals"):
            object.__setattr__(self, name, clean_values(getattr(self, name)))
        if self.pdf_location is None:
            object.__setattr__(self, "pdf_location", "")

    def to_dict(self) -> Dict[str, Any]:
        """Return the record keyed by the portal's camelCase field names."""

        payload = asdict(self)
        return {
            "documentNo": payload["document_no"],
            "recordedDate": payload["recorded_date"],
            "documentType": payload["document_type"],
            "consideration": payload["consideration"],
            "party1": list(payload["party1"]),
            "party2": list(payload["party2"]),
            "associatedDocuments": list(payload["associated_documents"]),
            "notes": payload["notes"],
            "legals": list(payload["legals"]),
            "pdfLocation": payload["pdf_location"],
        }


@dataclass
class RunOutcome:
    total_attempted: int = 0
    succeeded: int = 0
    failed: int = 0

    def record_success(self) -> None:
        self.total_attempted += 1
        self.succeeded += 1

    def record_failure(self) -> None:
        self.total_attempted += 1
        self.failed += 1

    def as_dict(self) -> Dict[str, int]:
        return {
            "totalAttempted": self.total_attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


@dataclass(frozen=True)
class ResumeCheckpoint:
    last_processed_date: str


@dataclass
class RunSummary:
    """Everything a caller needs after ``run_scrape`` returns."""

    search_range: SearchRange
    outcome: RunOutcome = field(default_factory=RunOutcome)
    total_rows: int = 0
    export_path: str = ""
    log_file: str = ""
    telemetry_file: str = ""
    terminal_status: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "startDate": self.search_range.start_date,
            "endDate": self.search_range.end_date,
            "totalRows": self.total_rows,
            **self.outcome.as_dict(),
            "exportPath": self.export_path,
            "logFile": self.log_file,
            "telemetryFile": self.telemetry_file,
            "terminalStatus": self.terminal_status,
        }


__all__ = [
    "clean_values",
    "SearchRange",
    "RecordEntry",
    "RunOutcome",
    "ResumeCheckpoint",
    "RunSummary",
]
