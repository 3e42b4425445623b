"""Excel export helpers for run telemetry."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd

from . import config
from .telemetry import STATUS_FAILED, STATUS_SUCCEEDED, load_latest_run, prune_old_exports


def export_latest_run_to_excel(dest_path: Optional[str] = None) -> str:
    """Create an Excel workbook from the most recent telemetry payload.

    Sheets: ``All`` (every row entry), ``Succeeded``, ``Failed`` and
    ``Summary`` (run totals plus failure counts per reason).
    """

    payload = load_latest_run()
    if payload is None:
        raise FileNotFoundError("No run telemetry available to export")

    df = pd.DataFrame(payload.get("entries", []))
    if df.empty:
        df = pd.DataFrame([{"info": "No entries in latest run"}])
        succeeded = pd.DataFrame()
        failed = pd.DataFrame()
    else:
        succeeded = df[df["status"] == STATUS_SUCCEEDED].copy()
        failed = df[df["status"] == STATUS_FAILED].copy()

    outcome = payload.get("outcome") or {}
    summary_rows = [
        {"metric": "run_id", "value": payload.get("run_id", "")},
        {"metric": "startDate", "value": payload.get("start_date", "")},
        {"metric": "endDate", "value": payload.get("end_date", "")},
        {"metric": "totalAttempted", "value": outcome.get("totalAttempted", 0)},
        {"metric": "succeeded", "value": outcome.get("succeeded", 0)},
        {"metric": "failed", "value": outcome.get("failed", 0)},
        {"metric": "terminalStatus", "value": payload.get("terminal_status", "")},
    ]
    summary = pd.DataFrame(summary_rows)
    failure_reasons = (
        failed.groupby("reason").size().reset_index(name="count").sort_values("count", ascending=False)
        if not failed.empty
        else pd.DataFrame()
    )

    exports_dir = Path(config.EXPORTS_DIR)
    exports_dir.mkdir(parents=True, exist_ok=True)
    if not dest_path:
        dest_path = str(exports_dir / f"records_{payload['run_id']}.xlsx")

    with pd.ExcelWriter(dest_path, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="All")
        succeeded.to_excel(writer, index=False, sheet_name="Succeeded")
        failed.to_excel(writer, index=False, sheet_name="Failed")
        summary.to_excel(writer, index=False, sheet_name="Summary")
        if not failure_reasons.empty:
            failure_reasons.to_excel(writer, index=False, sheet_name="Summary_Reasons")

    prune_old_exports()
    return dest_path


__all__ = ["export_latest_run_to_excel"]
