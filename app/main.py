from __future__ import annotations

import os
import threading
import time
from typing import Any, Dict, Generator, Optional

from flask import Flask, Response, jsonify, request, send_file

from app.scraper import config
from app.scraper.config_validation import validate_runtime_config
from app.scraper.export_excel import export_latest_run_to_excel
from app.scraper.logging_utils import _scraper_event
from app.scraper.run import run_scrape
from app.scraper.telemetry import load_latest_run
from app.scraper.utils import ensure_dirs, get_current_log_path, load_json_lines, log_line

app = Flask(__name__)

# Initialise storage paths on import so WSGI entrypoints also have the
# expected layout ready.
ensure_dirs()

# One browser session per process: a second run is refused while one is active.
_RUN_LOCK = threading.Lock()

STATUS_HISTORY_LIMIT = 50


def _tail_log_generator() -> Generator[str, None, None]:
    """Yield Server-Sent Event messages for appended log lines."""

    ensure_dirs()
    current_path = get_current_log_path()
    current_path.parent.mkdir(parents=True, exist_ok=True)
    current_path.touch(exist_ok=True)

    handle = current_path.open("r", encoding="utf-8", errors="ignore")
    handle.seek(0, os.SEEK_END)

    try:
        while True:
            latest_path = get_current_log_path()
            if latest_path != current_path:
                handle.close()
                current_path = latest_path
                current_path.parent.mkdir(parents=True, exist_ok=True)
                current_path.touch(exist_ok=True)
                handle = current_path.open("r", encoding="utf-8", errors="ignore")
                handle.seek(0, os.SEEK_END)

            line = handle.readline()
            if line:
                yield f"data: {line.rstrip()}\n\n"
            else:
                time.sleep(1)
                yield ": heartbeat\n\n"
    finally:
        handle.close()


def _scrape_params() -> Dict[str, Any]:
    """Read run parameters from a JSON body or a form post."""

    payload = request.get_json(silent=True) or request.form.to_dict()
    params: Dict[str, Any] = {
        "start_date": str(payload.get("startDate") or payload.get("start_date") or "").strip() or None,
        "end_date": str(payload.get("endDate") or payload.get("end_date") or "").strip() or None,
        "row_limit": None,
        "capture_documents": None,
    }
    raw_limit = payload.get("rowLimit", payload.get("row_limit"))
    if raw_limit not in (None, ""):
        try:
            params["row_limit"] = max(0, int(raw_limit))
        except (TypeError, ValueError):
            params["row_limit"] = None
    raw_capture = payload.get("captureDocuments", payload.get("capture_documents"))
    if raw_capture not in (None, ""):
        params["capture_documents"] = str(raw_capture).strip().lower() not in {"0", "false", "no", "off"}
    return params


def is_run_active() -> bool:
    return _RUN_LOCK.locked()


@app.post("/scrape")
def start_scrape() -> Response:
    """Start a scrape in a background thread."""

    try:
        validate_runtime_config("ui")
    except ValueError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 400

    params = _scrape_params()
    if not _RUN_LOCK.acquire(blocking=False):
        _scraper_event("state", phase="scrape_refused", reason="run_active")
        return jsonify({"ok": False, "error": "A scrape is already running"}), 409

    app.config["LAST_PARAMS"] = params

    def _run() -> None:
        try:
            with app.app_context():
                summary = run_scrape(trigger="ui", **params)
                app.config["LAST_SUMMARY"] = summary.as_dict()
        except Exception as exc:  # noqa: BLE001
            log_line(f"Scrape thread failed: {exc}")
        finally:
            _RUN_LOCK.release()

    try:
        threading.Thread(target=_run, daemon=True).start()
    except RuntimeError:
        _RUN_LOCK.release()
        raise
    return jsonify({"ok": True, "started": True, "params": params}), 202


@app.get("/api/status")
def api_status() -> Response:
    """Return the recent status messages and whether a run is active."""

    messages = load_json_lines(config.STATUS_FILE, limit=STATUS_HISTORY_LIMIT)
    last_summary: Optional[Dict[str, Any]] = app.config.get("LAST_SUMMARY")
    return jsonify(
        {
            "ok": True,
            "running": is_run_active(),
            "messages": messages,
            "last_summary": last_summary,
        }
    )


@app.get("/api/records")
def api_records() -> Response:
    """Return records pushed to the local dataset, newest last."""

    try:
        limit = int(request.args.get("limit", "0"))
    except ValueError:
        limit = 0
    records = load_json_lines(config.DATASET_FILE, limit=limit if limit > 0 else None)
    return jsonify({"ok": True, "count": len(records), "records": records})


@app.get("/api/runs/latest")
def api_runs_latest() -> Response:
    """Return the latest run telemetry payload."""

    payload = load_latest_run()
    if payload is None:
        return jsonify({"ok": False, "error": "no runs"}), 404
    return jsonify({"ok": True, "run": payload})


@app.get("/api/exports/latest.xlsx")
def api_export_latest_xlsx() -> Response:
    try:
        path = export_latest_run_to_excel()
    except FileNotFoundError as exc:
        return jsonify({"ok": False, "error": str(exc)}), 404
    return send_file(path, as_attachment=True, download_name=os.path.basename(path))


@app.get("/logs/stream")
def logs_stream() -> Response:
    """Stream log updates to the browser using SSE."""

    response = Response(_tail_log_generator(), mimetype="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response


@app.get("/files/<path:filename>")
def download_file(filename: str) -> Response:
    """Serve a captured document if it exists within the PDF directory."""

    target = (config.PDF_DIR / filename).resolve()
    pdf_root = config.PDF_DIR.resolve()
    if not str(target).startswith(str(pdf_root)):
        return Response("Invalid path", status=400)
    if not target.exists() or not target.is_file():
        return Response("File not found", status=404)
    return send_file(target, as_attachment=True, download_name=target.name)


@app.get("/exports/<path:filename>")
def download_export(filename: str) -> Response:
    """Serve a delimited export from the CSV directory."""

    target = (config.CSV_DIR / filename).resolve()
    csv_root = config.CSV_DIR.resolve()
    if not str(target).startswith(str(csv_root)):
        return Response("Invalid path", status=400)
    if not target.exists() or not target.is_file():
        return Response("File not found", status=404)
    return send_file(target, as_attachment=True, download_name=target.name)


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8080)
