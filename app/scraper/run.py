"""Playwright-based scraper for the Medina County (Ohio) recorder portal.

Workflow:

- Resolve the date range (arguments, then job input) and move its start
  past the last checkpoint when one exists.
- Start one browser session and submit the date-range search (bounded
  retries).
- Walk every result row in order: expand, extract, capture the document,
  collapse. Each record is pushed to the record sink as soon as its row is
  done; a failing row is counted and skipped.
- Export all records to ``Output/CSVs/OH-Medina_<YYYY-MM-DD>.csv``.
- Stop the session on every exit path.

Progress goes to the status sink; exactly one terminal status is emitted
per run. This is wired to ``/scrape`` via ``run_scrape()``.
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from . import config, export, hosting, rows, search, session, sinks, state
from .config_validation import validate_runtime_config
from .date_utils import parse_portal_date, resume_start_date, validate_search_dates
from .errors import CheckpointReadFailure, PlatformError, RowFailure
from .logging_utils import _scraper_event
from .models import RecordEntry, RunOutcome, RunSummary, SearchRange
from .telemetry import STATUS_FAILED, STATUS_SUCCEEDED, RunTelemetry
from .utils import ensure_dirs, log_line, setup_run_logger, short_error_message

STATUS_STARTING = "Starting OH-Medina scraper..."
STATUS_NO_RECORDS = "Finished: No records found."
STATUS_SUCCESS = "Success: All records exported to CSV and Dataset."
STATUS_UP_TO_DATE = "Finished: Date range already processed."


def _resolve_range(
    start_date: Optional[str],
    end_date: Optional[str],
    client: Optional[hosting.ApifyClient],
) -> SearchRange:
    search_range = SearchRange(start_date=(start_date or "").strip(), end_date=(end_date or "").strip())
    if search_range.start_date and search_range.end_date:
        return search_range

    job = state.load_job_input(client)
    if not search_range.start_date:
        search_range.start_date = job.start_date
    if not search_range.end_date:
        search_range.end_date = job.end_date
    return search_range


def _apply_checkpoint(
    search_range: SearchRange,
    status: sinks.StatusReporter,
    client: Optional[hosting.ApifyClient],
) -> bool:
    """Move the range start past the checkpoint. Checkpoint problems are ignored.

    Returns ``True`` when the checkpoint already covers the whole range.
    """

    try:
        checkpoint = state.load_checkpoint(client)
    except CheckpointReadFailure as exc:
        log_line(f"[STATE] State load failed (continuing with full range): {exc}")
        return False
    if checkpoint is None:
        return False

    resume_start = resume_start_date(checkpoint.last_processed_date)
    if resume_start is None:
        log_line(
            f"[STATE] Checkpoint date {checkpoint.last_processed_date!r} not understood; "
            "continuing with full range."
        )
        return False

    if parse_portal_date(resume_start) > parse_portal_date(search_range.end_date):
        log_line(
            f"[STATE] Checkpoint {checkpoint.last_processed_date} already covers endDate "
            f"{search_range.end_date}; nothing left to search."
        )
        return True

    search_range.start_date = resume_start
    status.report(f"Resuming from checkpoint: StartDate set to {resume_start}...")
    _scraper_event(
        "state",
        phase="resume",
        last_processed=checkpoint.last_processed_date,
        start_date=resume_start,
    )
    return False


def _rows_to_process(total_rows: int, row_limit: int) -> int:
    if row_limit > 0:
        return min(total_rows, row_limit)
    return total_rows


def _save_checkpoint(search_range: SearchRange, client: Optional[hosting.ApifyClient]) -> None:
    try:
        state.save_checkpoint(search_range.end_date, client=client)
    except (OSError, PlatformError) as exc:
        _scraper_event("error", phase="checkpoint_save", error=short_error_message(exc))


def run_scrape(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    *,
    headless: Optional[bool] = None,
    row_limit: Optional[int] = None,
    capture_documents: Optional[bool] = None,
    status: Optional[sinks.StatusReporter] = None,
    record_sink: Optional[sinks.RecordSink] = None,
    client: Optional[hosting.ApifyClient] = None,
    trigger: str = "cli",
) -> RunSummary:
    """Run one full scrape and return its summary.

    Raises the fatal failure (session start, exhausted search, invalid
    dates) after emitting the terminal ``Fatal Error`` status.
    """

    ensure_dirs()
    log_path = setup_run_logger()
    if client is None:
        client = hosting.get_client()
    status = status or sinks.StatusReporter(client)
    record_sink = record_sink or sinks.RecordSink(client)
    limit = config.ROW_LIMIT if row_limit is None else row_limit
    capture_enabled = config.CAPTURE_DOCUMENTS if capture_documents is None else capture_documents

    telemetry = RunTelemetry(mode=trigger)
    outcome = RunOutcome()
    summary = RunSummary(search_range=SearchRange(), outcome=outcome, log_file=str(log_path))
    records: List[RecordEntry] = []
    active_session: Optional[session.Session] = None

    status.report(STATUS_STARTING)
    try:
        summary.search_range = _resolve_range(start_date, end_date, client)
        validate_search_dates(summary.search_range.start_date, summary.search_range.end_date)
        if _apply_checkpoint(summary.search_range, status, client):
            status.terminal(STATUS_UP_TO_DATE)
            summary.terminal_status = STATUS_UP_TO_DATE
            return summary
        if limit < 0:
            raise ValueError("row_limit must be zero (all rows) or positive")

        active_session = session.start_session(headless)
        status.report(
            f"Searching dates: {summary.search_range.start_date} to {summary.search_range.end_date}..."
        )
        search.submit_search(active_session, summary.search_range)

        summary.total_rows = rows.count_rows(active_session)
        if summary.total_rows == 0:
            status.terminal(STATUS_NO_RECORDS)
            summary.terminal_status = STATUS_NO_RECORDS
            return summary

        status.report(f"Found {summary.total_rows} records. Preparing to extract...")
        to_process = _rows_to_process(summary.total_rows, limit)
        if to_process < summary.total_rows:
            log_line(f"[RUN] Row limit {limit} applied: processing {to_process} of {summary.total_rows} rows.")

        for index in range(to_process):
            status.report(f"Processing record {index + 1} of {to_process}...")
            try:
                record = rows.process_row(
                    active_session,
                    index,
                    capture_documents=capture_enabled,
                    client=client,
                )
            except RowFailure as exc:
                outcome.record_failure()
                telemetry.add(index, "", STATUS_FAILED, reason=exc.error_code)
                _scraper_event(
                    "error",
                    phase="row",
                    row_index=index,
                    error_code=exc.error_code,
                    error=short_error_message(exc),
                )
                log_line(f"[ROW] {index + 1}: failed ({exc.error_code}); continuing.")
                continue

            records.append(record)
            record_sink.push(record)
            outcome.record_success()
            telemetry.add(index, record.document_no, STATUS_SUCCEEDED, pdf_location=record.pdf_location)

        export_path = export.export_records(records, client=client)
        summary.export_path = str(export_path) if export_path else ""
        # Failed rows stay inside the range of the next run.
        if outcome.failed == 0 and to_process == summary.total_rows:
            _save_checkpoint(summary.search_range, client)

        status.terminal(STATUS_SUCCESS)
        summary.terminal_status = STATUS_SUCCESS
        log_line(
            f"[RUN] Done: attempted={outcome.total_attempted} "
            f"succeeded={outcome.succeeded} failed={outcome.failed}"
        )
        return summary
    except Exception as exc:  # noqa: BLE001
        message = f"Fatal Error: {short_error_message(exc)}"
        _scraper_event(
            "error",
            phase="run",
            error_code=getattr(exc, "error_code", None),
            error=short_error_message(exc),
        )
        status.terminal(message)
        summary.terminal_status = message
        raise
    finally:
        session.stop_session(active_session)
        try:
            summary.telemetry_file = telemetry.finalize(
                {
                    "start_date": summary.search_range.start_date,
                    "end_date": summary.search_range.end_date,
                    "total_rows": summary.total_rows,
                    "outcome": outcome.as_dict(),
                    "export_path": summary.export_path,
                    "terminal_status": summary.terminal_status,
                    "log_file": str(log_path),
                }
            )
        except OSError as exc:
            log_line(f"[RUN][WARN] Unable to write run telemetry: {exc}")


def _cli_entrypoint(argv: Optional[List[str]] = None) -> None:  # pragma: no cover
    parser = argparse.ArgumentParser(description="Scrape the Medina County recorder portal")
    parser.add_argument("--start-date", default=None, help="MM/DD/YYYY; defaults to job input")
    parser.add_argument("--end-date", default=None, help="MM/DD/YYYY; defaults to job input")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument(
        "--row-limit",
        type=int,
        default=None,
        help="Process at most N rows (0 = all)",
    )
    parser.add_argument(
        "--no-documents",
        action="store_true",
        help="Skip document capture",
    )

    args = parser.parse_args(argv)

    ensure_dirs()
    validate_runtime_config("cli")

    run_scrape(
        start_date=args.start_date,
        end_date=args.end_date,
        headless=False if args.headed else None,
        row_limit=args.row_limit,
        capture_documents=False if args.no_documents else None,
        trigger="cli",
    )


__all__ = ["run_scrape", "_cli_entrypoint"]


if __name__ == "__main__":  # pragma: no cover
    _cli_entrypoint()
