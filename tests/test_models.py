from __future__ import annotations

import dataclasses

import pytest

from app.scraper.models import RecordEntry, RunOutcome, RunSummary, SearchRange, clean_values


def test_clean_values_trims_and_drops_blanks() -> None:
    assert clean_values([" A ", "", None, "  ", "B"]) == ("A", "B")


@pytest.mark.parametrize("document_no", ["", "   "])
def test_record_requires_document_number(document_no: str) -> None:
    with pytest.raises(ValueError):
        RecordEntry(document_no=document_no)


def test_record_is_immutable() -> None:
    record = RecordEntry(document_no="2024-000001")

    with pytest.raises(dataclasses.FrozenInstanceError):
        record.notes = "changed"  # type: ignore[misc]


def test_record_to_dict_uses_portal_field_names() -> None:
    record = RecordEntry(
        document_no="2024-000001",
        recorded_date="07/01/2024",
        party1=["SMITH JOHN", ""],
        legals=("LOT 1",),
    )

    assert record.to_dict() == {
        "documentNo": "2024-000001",
        "recordedDate": "07/01/2024",
        "documentType": "",
        "consideration": "",
        "party1": ["SMITH JOHN"],
        "party2": [],
        "associatedDocuments": [],
        "notes": "",
        "legals": ["LOT 1"],
        "pdfLocation": "",
    }


def test_run_outcome_counts_add_up() -> None:
    outcome = RunOutcome()
    outcome.record_success()
    outcome.record_success()
    outcome.record_failure()

    assert outcome.as_dict() == {"totalAttempted": 3, "succeeded": 2, "failed": 1}
    assert outcome.succeeded + outcome.failed == outcome.total_attempted


def test_run_summary_as_dict() -> None:
    summary = RunSummary(SearchRange("07/01/2024", "07/31/2024"), total_rows=4)

    payload = summary.as_dict()

    assert payload["startDate"] == "07/01/2024"
    assert payload["totalRows"] == 4
    assert payload["totalAttempted"] == 0
