import importlib
import json
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

from app.scraper import config, telemetry
from app.scraper.models import RunSummary, SearchRange
from tests.fakes import configure_temp_paths


def _reload_main_module():
    if "app.main" in sys.modules:
        del sys.modules["app.main"]
    return importlib.import_module("app.main")


class _DummyThread:
    """Thread stub that runs the target synchronously in tests."""

    def __init__(self, target, daemon: bool = True):
        self._target = target
        self.daemon = daemon

    def start(self) -> None:
        self._target()


@pytest.fixture
def main(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    configure_temp_paths(tmp_path, monkeypatch)
    return _reload_main_module()


def test_ui_scrape_uses_ui_trigger(main, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: Dict[str, Any] = {}

    def fake_run_scrape(*args, **kwargs):
        calls["kwargs"] = kwargs
        return RunSummary(SearchRange(kwargs["start_date"], kwargs["end_date"]), total_rows=3)

    monkeypatch.setattr(main, "run_scrape", fake_run_scrape)
    monkeypatch.setattr(main.threading, "Thread", _DummyThread)

    client = main.app.test_client()
    resp = client.post(
        "/scrape",
        json={"startDate": "07/01/2024", "endDate": "07/31/2024", "rowLimit": "5", "captureDocuments": "false"},
    )

    assert resp.status_code == 202
    assert calls["kwargs"] == {
        "trigger": "ui",
        "start_date": "07/01/2024",
        "end_date": "07/31/2024",
        "row_limit": 5,
        "capture_documents": False,
    }
    assert not main.is_run_active()

    status = client.get("/api/status").get_json()
    assert status["running"] is False
    assert status["last_summary"]["totalRows"] == 3


def test_form_post_without_dates_defers_to_job_input(main, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: Dict[str, Any] = {}

    def fake_run_scrape(**kwargs):
        calls.update(kwargs)
        return RunSummary(SearchRange())

    monkeypatch.setattr(main, "run_scrape", fake_run_scrape)
    monkeypatch.setattr(main.threading, "Thread", _DummyThread)

    resp = main.app.test_client().post("/scrape", data={})

    assert resp.status_code == 202
    assert calls["start_date"] is None
    assert calls["row_limit"] is None


def test_second_scrape_is_refused_while_running(main) -> None:
    assert main._RUN_LOCK.acquire(blocking=False)
    try:
        resp = main.app.test_client().post("/scrape", json={})
    finally:
        main._RUN_LOCK.release()

    assert resp.status_code == 409
    assert resp.get_json()["ok"] is False


def test_invalid_config_is_rejected(main, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "ROW_LIMIT", -3)

    resp = main.app.test_client().post("/scrape", json={})

    assert resp.status_code == 400


def test_failed_run_releases_lock(main, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run_scrape(**kwargs):
        raise RuntimeError("browser crashed")

    monkeypatch.setattr(main, "run_scrape", fake_run_scrape)
    monkeypatch.setattr(main.threading, "Thread", _DummyThread)

    resp = main.app.test_client().post("/scrape", json={})

    assert resp.status_code == 202
    assert not main.is_run_active()


def test_status_returns_recent_messages(main) -> None:
    with config.STATUS_FILE.open("w", encoding="utf-8") as handle:
        for n in range(60):
            handle.write(json.dumps({"ts": n, "message": f"Processing record {n}...", "terminal": False}) + "\n")

    payload = main.app.test_client().get("/api/status").get_json()

    assert len(payload["messages"]) == main.STATUS_HISTORY_LIMIT
    assert payload["messages"][-1]["message"] == "Processing record 59..."


def test_records_endpoint_limits_results(main) -> None:
    with config.DATASET_FILE.open("w", encoding="utf-8") as handle:
        for n in range(3):
            handle.write(json.dumps({"documentNo": f"2024-00000{n}"}) + "\n")

    payload = main.app.test_client().get("/api/records?limit=2").get_json()

    assert payload["count"] == 2
    assert [item["documentNo"] for item in payload["records"]] == ["2024-000001", "2024-000002"]


def test_latest_run_and_excel_endpoints(main) -> None:
    client = main.app.test_client()
    assert client.get("/api/runs/latest").status_code == 404
    assert client.get("/api/exports/latest.xlsx").status_code == 404

    run = telemetry.RunTelemetry()
    run.add(0, "2024-000001", telemetry.STATUS_SUCCEEDED)
    run.finalize({"outcome": {"totalAttempted": 1, "succeeded": 1, "failed": 0}})

    latest = client.get("/api/runs/latest")
    assert latest.status_code == 200
    assert latest.get_json()["run"]["entries"][0]["document_no"] == "2024-000001"
    workbook = client.get("/api/exports/latest.xlsx")
    assert workbook.status_code == 200
    workbook.close()


def test_file_routes_stay_inside_output_dirs(main) -> None:
    config.PDF_DIR.mkdir(parents=True, exist_ok=True)
    (config.PDF_DIR / "2024-000001.pdf").write_bytes(b"%PDF-1.7")
    client = main.app.test_client()

    found = client.get("/files/2024-000001.pdf")
    assert found.status_code == 200
    assert found.data == b"%PDF-1.7"
    found.close()
    assert client.get("/files/missing.pdf").status_code == 404
    assert client.get("/exports/missing.csv").status_code == 404
