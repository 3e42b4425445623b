"""Per-run row telemetry written next to the logs for later reporting."""

from __future__ import annotations

import json
import os
import time
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config

MAX_EXPORTS = int(os.environ.get("EXPORTS_KEEP_MAX", "5"))

STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


class RunTelemetry:
    """Collect one entry per processed row and persist them as JSON."""

    def __init__(self, mode: str = "scrape") -> None:
        self.run_id = f"{_ts()}_{uuid.uuid4().hex[:8]}"
        self.mode = mode
        self.started_at = time.time()
        self.entries: List[Dict[str, Any]] = []
        self.summary: Dict[str, Any] = defaultdict(int)
        self.runs_dir = Path(config.RUNS_DIR)
        self.runs_dir.mkdir(parents=True, exist_ok=True)

    def add(
        self,
        index: int,
        document_no: str,
        status: str,
        reason: str = "",
        pdf_location: str = "",
    ) -> None:
        self.entries.append(
            {
                "index": index,
                "document_no": document_no,
                "status": status,
                "reason": reason,
                "pdf_location": pdf_location,
            }
        )
        self.summary[f"count_{status}"] += 1

    def finalize(self, extra: Optional[Dict[str, Any]] = None) -> str:
        payload = {
            "run_id": self.run_id,
            "mode": self.mode,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "summary": dict(self.summary),
            "entries": self.entries,
            **(extra or {}),
        }
        path = self.runs_dir / f"run_{self.run_id}.json"
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        return str(path)


def latest_run_path() -> Optional[Path]:
    """Return the newest ``run_*.json`` in ``RUNS_DIR``, if any."""

    runs_dir = Path(config.RUNS_DIR)
    if not runs_dir.is_dir():
        return None
    runs = sorted(runs_dir.glob("run_*.json"))
    return runs[-1] if runs else None


def load_latest_run() -> Optional[Dict[str, Any]]:
    path = latest_run_path()
    if path is None:
        return None
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def prune_old_exports() -> None:
    exports_dir = Path(config.EXPORTS_DIR)
    if not exports_dir.is_dir():
        return
    files = sorted(exports_dir.glob("*.xlsx"))
    while len(files) > MAX_EXPORTS:
        old = files.pop(0)
        try:
            old.unlink()
        except OSError:
            continue


__all__ = [
    "RunTelemetry",
    "STATUS_FAILED",
    "STATUS_SUCCEEDED",
    "latest_run_path",
    "load_latest_run",
    "prune_old_exports",
]
