from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from . import config

LOGGER = logging.getLogger("medina")
_LOGGER_INITIALISED = False
_CURRENT_LOG_FILE: Path = config.LOG_FILE

# Characters no mainstream filesystem accepts in a file name, plus controls.
_INVALID_FILENAME_RE = re.compile(r'[\x00-\x1f<>:"/\\|?*]')
UNKNOWN_FILENAME = "unknown"


def _configure_logger(log_path: Path) -> None:
    """Configure the shared application logger to write to ``log_path``."""

    global _LOGGER_INITIALISED, _CURRENT_LOG_FILE

    log_path.parent.mkdir(parents=True, exist_ok=True)

    for handler in list(LOGGER.handlers):
        LOGGER.removeHandler(handler)
        try:
            handler.close()
        except Exception:  # noqa: BLE001
            continue

    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)

    LOGGER.setLevel(logging.INFO)
    LOGGER.addHandler(stream_handler)
    LOGGER.addHandler(file_handler)
    LOGGER.propagate = False

    _CURRENT_LOG_FILE = log_path
    _LOGGER_INITIALISED = True


def _ensure_logger() -> None:
    if _LOGGER_INITIALISED:
        return
    _configure_logger(config.LOG_FILE)


def setup_run_logger() -> Path:
    """Rotate to a fresh timestamped log file for the current run."""

    ensure_dirs()
    timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
    log_path = config.LOG_DIR / f"scrape_{timestamp}.log"
    _configure_logger(log_path)
    LOGGER.info("Logging to %s", log_path)
    return log_path


def get_current_log_path() -> Path:
    """Return the path to the log file currently receiving log lines."""

    _ensure_logger()
    return _CURRENT_LOG_FILE


def ensure_dirs() -> None:
    """Ensure that the output directory structure exists."""

    for path in (
        config.DATA_DIR,
        config.PDF_DIR,
        config.CSV_DIR,
        config.LOG_DIR,
        config.RUNS_DIR,
        config.EXPORTS_DIR,
    ):
        path.mkdir(parents=True, exist_ok=True)


def log_line(message: str) -> None:
    """Write a timestamped log line to stdout and the active log file."""

    _ensure_logger()
    LOGGER.info(message)


def sanitize_filename(name: str | None) -> str:
    """Return a file name derived from *name* that any filesystem accepts.

    Every invalid character becomes ``_`` and the result is trimmed. Missing
    or blank names map to ``unknown``. Applying the function twice yields the
    same value as applying it once.
    """

    if not name:
        return UNKNOWN_FILENAME
    cleaned = _INVALID_FILENAME_RE.sub("_", name).strip()
    return cleaned or UNKNOWN_FILENAME


def short_error_message(exc: BaseException, max_length: int = 200) -> str:
    """Return the first line of *exc*, truncated for log lines."""

    lines = (str(exc) or "").strip().splitlines()
    message = lines[0] if lines else type(exc).__name__
    if len(message) > max_length:
        return message[: max_length - 3] + "..."
    return message


def append_json_line(path: Path, payload: dict[str, Any]) -> None:
    """Append *payload* as one JSON line to *path*."""

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False) + "\n")


def load_json_lines(path: Path, limit: int | None = None) -> list[dict[str, Any]]:
    """Load JSON objects from *path*, skipping malformed lines.

    When *limit* is given only the last *limit* entries are returned.
    """

    if not path.exists():
        return []

    entries: list[dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                value = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(value, dict):
                entries.append(value)

    if limit is not None:
        return entries[-limit:] if limit > 0 else []
    return entries


def load_json_file(path: Path) -> Any:
    """Read JSON from *path*; returns ``None`` when the file is absent."""

    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def save_json_file(path: Path, payload: Any) -> None:
    """Persist *payload* to *path* atomically."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


__all__ = [
    "LOGGER",
    "UNKNOWN_FILENAME",
    "append_json_line",
    "ensure_dirs",
    "get_current_log_path",
    "load_json_file",
    "load_json_lines",
    "log_line",
    "sanitize_filename",
    "save_json_file",
    "setup_run_logger",
    "short_error_message",
]
