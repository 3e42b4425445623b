from app.scraper import logging_utils


def test_scraper_event_label_and_phase(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg: events.append(msg))

    logging_utils._scraper_event("state", phase="retry_decision", kind="retryable")

    assert events
    line = events[-1]
    assert line.startswith("[MEDINA][STATE]")
    assert "phase='retry_decision'" in line
    assert "kind='retryable'" in line


def test_scraper_event_phase_only_becomes_label(monkeypatch):
    events: list[str] = []
    monkeypatch.setattr(logging_utils, "log_line", lambda msg: events.append(msg))

    logging_utils._scraper_event(phase="row", index=3)

    assert events == ["[MEDINA][ROW] index=3"]
