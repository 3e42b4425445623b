from __future__ import annotations

from typing import Any

from .utils import log_line


def _scraper_event(label: str = "", *, phase: str | None = None, **fields: Any) -> None:
    """Emit a structured ``[MEDINA][LABEL]`` log line.

    ``phase`` doubles as the label when no label is given. When both are
    present the phase travels in the payload. Keys are sorted so lines diff
    cleanly between runs. Formatting problems are dropped silently.
    """

    try:
        event_label = label or (phase or "event")
        if phase and label:
            fields.setdefault("phase", phase)
        payload = ", ".join(f"{k}={v!r}" for k, v in sorted(fields.items()))
        log_line(f"[MEDINA][{event_label.upper()}] {payload}".rstrip())
    except Exception:
        return


__all__ = ["_scraper_event"]
