from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from app.scraper import export
from app.scraper.errors import PlatformError
from app.scraper.models import RecordEntry
from tests.fakes import FakePlatformClient

HEADER = (
    "Document No|Recorded Date|Document Type|Consideration|Party 1|Party 2|"
    "Associated Documents|Notes|Legals|PDF URL"
)


def _records() -> list[RecordEntry]:
    return [
        RecordEntry(
            document_no="2024-001234",
            recorded_date="07/01/2024",
            document_type="DEED",
            consideration="$125,000.00",
            notes="Corrective deed",
            party1=["SMITH JOHN", "SMITH JANE"],
            party2=["ACME BANK NA"],
            associated_documents=["2019-004411"],
            legals=["LOT 7 MEADOW RUN"],
            pdf_location="Output/PDFs/2024-001234.pdf",
        ),
        RecordEntry(document_no="2024-001235", recorded_date="07/02/2024", document_type="MORTGAGE"),
    ]


def test_export_records_writes_pipe_delimited_file(tmp_path: Path) -> None:
    path = export.export_records(_records(), date_key="2024-07-01", csv_dir=tmp_path)

    assert path == tmp_path / "OH-Medina_2024-07-01.csv"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == HEADER
    assert lines[1] == (
        "2024-001234|07/01/2024|DEED|$125,000.00|SMITH JOHN;SMITH JANE|ACME BANK NA|"
        "2019-004411|Corrective deed|LOT 7 MEADOW RUN|Output/PDFs/2024-001234.pdf"
    )
    assert lines[2] == "2024-001235|07/02/2024|MORTGAGE|||||||"


def test_export_then_read_back(tmp_path: Path) -> None:
    records = _records()

    path = export.export_records(records, date_key="2024-07-01", csv_dir=tmp_path)

    assert export.read_export(path) == records


def test_empty_export_writes_nothing(tmp_path: Path) -> None:
    assert export.export_records([], date_key="2024-07-01", csv_dir=tmp_path) is None
    assert list(tmp_path.iterdir()) == []


def test_export_uploads_when_hosted(tmp_path: Path) -> None:
    client = FakePlatformClient()

    path = export.export_records(_records(), date_key="2024-07-01", client=client, csv_dir=tmp_path)

    assert len(client.put_calls) == 1
    key, body, content_type = client.put_calls[0]
    assert key == "OH-Medina_2024-07-01.csv"
    assert content_type == "text/csv"
    assert body == path.read_bytes()


def test_upload_failure_keeps_local_file(tmp_path: Path) -> None:
    client = FakePlatformClient(fail_with=PlatformError("HTTP 500", http_status=500))

    path = export.export_records(_records(), date_key="2024-07-01", client=client, csv_dir=tmp_path)

    assert path is not None and path.exists()


@pytest.mark.parametrize("date_key", ["2024-07-01", "2025-01-31"])
def test_export_filename(date_key: str) -> None:
    assert export.export_filename(date_key) == f"OH-Medina_{date_key}.csv"


def test_local_write_failure_returns_none(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _disk_full(self, *args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(pd.DataFrame, "to_csv", _disk_full)
    client = FakePlatformClient()

    assert export.export_records(_records(), date_key="2024-07-01", client=client, csv_dir=tmp_path) is None
    assert client.put_calls == []
