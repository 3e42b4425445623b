from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.scraper import config, sinks
from app.scraper.errors import PlatformError
from app.scraper.models import RecordEntry
from tests.fakes import FakePlatformClient, configure_temp_paths


@pytest.fixture(autouse=True)
def _paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    configure_temp_paths(tmp_path, monkeypatch)


def _status_lines() -> list[dict]:
    return [json.loads(line) for line in config.STATUS_FILE.read_text(encoding="utf-8").splitlines()]


def test_status_reporter_writes_every_message() -> None:
    reporter = sinks.StatusReporter()

    reporter.report("Starting OH-Medina scraper...")
    reporter.report("Processing record 1 of 3...")

    lines = _status_lines()
    assert [line["message"] for line in lines] == [
        "Starting OH-Medina scraper...",
        "Processing record 1 of 3...",
    ]
    assert all(line["terminal"] is False for line in lines)


def test_terminal_status_is_sent_once() -> None:
    client = FakePlatformClient()
    reporter = sinks.StatusReporter(client)

    assert reporter.terminal("Success: All records exported to CSV and Dataset.") is True
    assert reporter.terminal("Fatal Error: late failure") is False
    reporter.report("Processing record 9 of 9...")

    assert reporter.terminal_message == "Success: All records exported to CSV and Dataset."
    assert client.status_calls == [("Success: All records exported to CSV and Dataset.", True)]
    assert [line["message"] for line in _status_lines()] == [
        "Success: All records exported to CSV and Dataset."
    ]


def test_status_platform_failure_is_not_raised() -> None:
    reporter = sinks.StatusReporter(FakePlatformClient(fail_with=PlatformError("HTTP 502")))

    reporter.report("Searching dates: 07/01/2024 to 07/31/2024...")

    assert reporter.history == ["Searching dates: 07/01/2024 to 07/31/2024..."]


def test_record_sink_appends_and_pushes() -> None:
    client = FakePlatformClient()
    sink = sinks.RecordSink(client)
    record = RecordEntry(document_no="2024-000001", party1=["SMITH JOHN", " "])

    sink.push(record)

    stored = json.loads(config.DATASET_FILE.read_text(encoding="utf-8").strip())
    assert stored["documentNo"] == "2024-000001"
    assert stored["party1"] == ["SMITH JOHN"]
    assert client.pushed == [stored]
    assert sink.pushed == 1


def test_record_sink_survives_platform_failure() -> None:
    sink = sinks.RecordSink(FakePlatformClient(fail_with=PlatformError("HTTP 503")))

    sink.push(RecordEntry(document_no="2024-000002"))

    assert config.DATASET_FILE.exists()
    assert sink.pushed == 1
