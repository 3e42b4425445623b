"""Per-row state machine: expand, extract, capture the document, collapse.

Rows are addressed by position (``.resultRow`` nth) and every locator is
re-acquired after document capture, because the Angular results list
re-renders when the viewer closes.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from playwright.sync_api import Error as PWError, Locator, TimeoutError as PWTimeout

from . import capture, config
from .dom import (
    SELECTORS,
    collect_section_values,
    dom_click,
    find_label_value,
    read_text,
    wait_for_backdrop_hidden,
)
from .errors import ErrorCode, RowFailure
from .hosting import ApifyClient
from .logging_utils import _scraper_event
from .models import RecordEntry
from .session import Session
from .utils import log_line, short_error_message


class RowState(str, Enum):
    COLLAPSED = "collapsed"
    EXPANDING = "expanding"
    EXTRACTING = "extracting"
    CAPTURING = "capturing"
    COLLAPSING = "collapsing"


def _transition(index: int, state: RowState, **fields) -> None:
    _scraper_event("row", phase=state.value, row_index=index, **fields)


def _row(session: Session, index: int) -> Locator:
    return session.page.locator(SELECTORS.row).nth(index)


def count_rows(session: Session) -> int:
    return session.page.locator(SELECTORS.row).count()


def expand_row(session: Session, index: int) -> Locator:
    """Open row *index* and return its detail panel."""

    _transition(index, RowState.EXPANDING)
    row = _row(session, index)
    try:
        wait_for_backdrop_hidden(session.page)
        dom_click(row.locator(SELECTORS.row_summary).first)
        panel = row.locator(SELECTORS.row_detail).first
        panel.wait_for(state="visible", timeout=config.DETAIL_TIMEOUT_MS)
    except PWTimeout as exc:
        raise RowFailure(
            f"Detail panel did not open: {short_error_message(exc)}",
            row_index=index,
            error_code=ErrorCode.ROW_EXPAND,
        ) from exc
    return panel


def extract_fields(panel: Locator, index: int) -> dict:
    """Read every field of an expanded row into ``RecordEntry`` keyword args."""

    _transition(index, RowState.EXTRACTING)
    doc_button = panel.locator(SELECTORS.document_no_button).first
    document_no = read_text(doc_button) if doc_button.count() > 0 else ""
    if not document_no:
        raise RowFailure(
            "Row has no document number",
            row_index=index,
            error_code=ErrorCode.ROW_IDENTIFIER,
        )

    # Position decides meaning: first label is the date, second the type.
    primary = panel.locator(SELECTORS.primary_content)
    primary_count = primary.count()
    recorded_date = read_text(primary.nth(0)) if primary_count >= 1 else ""
    document_type = read_text(primary.nth(1)) if primary_count >= 2 else ""

    return {
        "document_no": document_no,
        "recorded_date": recorded_date,
        "document_type": document_type,
        "consideration": find_label_value(panel, "Additional", "Consideration:"),
        "notes": find_label_value(panel, "Additional", "Notes:"),
        "party1": collect_section_values(panel, "Parties", "Party 1:"),
        "party2": collect_section_values(panel, "Parties", "Party 2:"),
        "legals": collect_section_values(panel, "Legals"),
        "associated_documents": collect_section_values(
            panel, "Additional", "Associated Documents:"
        ),
    }


def has_document(panel: Locator) -> bool:
    icon = panel.locator(SELECTORS.row_detail_container).locator(SELECTORS.document_icon).first
    return icon.count() > 0 and icon.is_visible()


def collapse_row(session: Session, index: int) -> None:
    """Close row *index*; a detail panel that never hides is not an error."""

    _transition(index, RowState.COLLAPSING)
    row = _row(session, index)
    panel = row.locator(SELECTORS.row_detail).first
    try:
        dom_click(row.locator(SELECTORS.row_summary).first)
    except PWError as exc:
        _scraper_event("row", phase="collapse_click_failed", row_index=index, error=short_error_message(exc))
        return
    try:
        panel.wait_for(state="hidden", timeout=config.COLLAPSE_TIMEOUT_MS)
    except PWTimeout:
        # Some rows keep the detail node mounted after re-render.
        _scraper_event("row", phase="collapse_unconfirmed", row_index=index)
    _transition(index, RowState.COLLAPSED)


def process_row(
    session: Session,
    index: int,
    *,
    capture_documents: bool = True,
    client: Optional[ApifyClient] = None,
) -> RecordEntry:
    """Run one row through the state machine and return its record.

    Any failure before the record is built is raised as ``RowFailure``;
    the row is collapsed on every path.
    """

    try:
        panel = expand_row(session, index)
        fields = extract_fields(panel, index)

        pdf_location = ""
        if capture_documents and has_document(panel):
            _transition(index, RowState.CAPTURING, document_no=fields["document_no"])
            pdf_location = capture.capture_document(session, fields["document_no"], client=client)

        record = RecordEntry(pdf_location=pdf_location, **fields)
        log_line(
            f"[ROW] {index + 1}: {record.document_no} {record.document_type or '-'} "
            f"({'document' if pdf_location else 'no document'})"
        )
        return record
    except RowFailure:
        raise
    except Exception as exc:  # noqa: BLE001
        raise RowFailure(
            f"Row extraction failed: {short_error_message(exc)}",
            row_index=index,
            error_code=getattr(exc, "error_code", None) or ErrorCode.ROW_EXTRACT,
        ) from exc
    finally:
        try:
            collapse_row(session, index)
        except PWError as exc:
            _scraper_event("row", phase="collapse_failed", row_index=index, error=short_error_message(exc))


__all__ = [
    "RowState",
    "count_rows",
    "expand_row",
    "extract_fields",
    "has_document",
    "collapse_row",
    "process_row",
]
