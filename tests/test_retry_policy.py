from __future__ import annotations

import pytest

from app.scraper import retry_policy
from app.scraper.errors import ErrorCode, SearchFailure


@pytest.fixture
def event_recorder(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, dict]]:
    events: list[tuple[str, dict]] = []

    def _record(event_phase: str, **fields: object) -> None:
        events.append((event_phase, fields))

    monkeypatch.setattr(retry_policy, "_scraper_event", _record)
    return events


def _decisions(events: list[tuple[str, dict]]) -> list[dict]:
    return [fields for _, fields in events if fields["phase"] == "retry_decision"]


@pytest.mark.parametrize(
    "attempt, expected, kind",
    [
        (1, True, "retryable"),
        (2, True, "retryable"),
        (3, False, "capped"),
        (5, False, "capped"),
    ],
)
def test_search_timeout_retry_limits(
    attempt: int, expected: bool, kind: str, event_recorder: list[tuple[str, dict]]
) -> None:
    result = retry_policy.decide_retry(attempt, 3, error_code=ErrorCode.SEARCH_TIMEOUT)
    assert result is expected
    assert len(event_recorder) == 1
    phase, fields = event_recorder[0]
    assert phase == "state"
    assert fields["phase"] == "retry_decision"
    assert fields["error_code"] == ErrorCode.SEARCH_TIMEOUT
    assert fields["attempt"] == attempt
    assert fields["max_attempts"] == 3
    assert fields["will_retry"] is expected
    assert fields["kind"] == kind


@pytest.mark.parametrize(
    "error_code",
    [ErrorCode.BROWSER_LAUNCH, ErrorCode.ROW_EXPAND, ErrorCode.CAPTURE_FRAME, ErrorCode.CHECKPOINT_READ],
)
def test_non_retryable_error_codes(error_code: str, event_recorder: list[tuple[str, dict]]) -> None:
    assert error_code in retry_policy.NON_RETRYABLE_ERROR_CODES
    assert retry_policy.decide_retry(1, 3, error_code=error_code) is False
    _, fields = event_recorder[0]
    assert fields["kind"] == "non_retryable"
    assert fields["will_retry"] is False


@pytest.mark.parametrize(
    "error_code, http_status, expected, kind",
    [
        ("", None, False, "missing_error_code"),
        (None, None, False, "missing_error_code"),
        ("unexpected_code", None, False, "unknown"),
        (ErrorCode.PLATFORM_HTTP, 503, True, "retryable"),
        (ErrorCode.PLATFORM_HTTP, 429, True, "retryable"),
        (ErrorCode.PLATFORM_HTTP, 404, False, "unknown"),
    ],
)
def test_unknown_codes_fall_back_to_http_status(
    error_code: str | None,
    http_status: int | None,
    expected: bool,
    kind: str,
    event_recorder: list[tuple[str, dict]],
) -> None:
    assert retry_policy.decide_retry(1, 3, error_code=error_code, http_status=http_status) is expected
    _, fields = event_recorder[0]
    assert fields["kind"] == kind
    assert fields["http_status"] == http_status


@pytest.mark.parametrize("attempt, seconds", [(1, 1.0), (2, 2.0), (3, 4.0), (10, 30.0)])
def test_compute_backoff_seconds(attempt: int, seconds: float) -> None:
    assert retry_policy.compute_backoff_seconds(attempt) == seconds


def test_run_with_retries_returns_after_transient_failures(event_recorder: list[tuple[str, dict]]) -> None:
    calls: list[int] = []
    sleeps: list[float] = []

    def _operation() -> str:
        calls.append(1)
        if len(calls) < 3:
            raise SearchFailure("results never settled", error_code=ErrorCode.SEARCH_TIMEOUT)
        return "ok"

    result = retry_policy.run_with_retries(
        _operation,
        attempts=3,
        backoff_seconds=5,
        retry_on=(SearchFailure,),
        label="search",
        sleep=sleeps.append,
    )

    assert result == "ok"
    assert len(calls) == 3
    assert sleeps == [5, 5]
    assert [fields["will_retry"] for fields in _decisions(event_recorder)] == [True, True]


def test_run_with_retries_reraises_last_failure(event_recorder: list[tuple[str, dict]]) -> None:
    failures = [
        SearchFailure(f"attempt {n}", error_code=ErrorCode.SEARCH_CONTROLS) for n in range(1, 4)
    ]

    def _operation() -> None:
        raise failures[len(_decisions(event_recorder))]

    with pytest.raises(SearchFailure) as excinfo:
        retry_policy.run_with_retries(
            _operation,
            attempts=3,
            backoff_seconds=0,
            retry_on=(SearchFailure,),
            label="search",
            sleep=lambda _: None,
        )

    assert excinfo.value is failures[2]
    assert _decisions(event_recorder)[-1]["kind"] == "capped"


def test_run_with_retries_does_not_catch_other_errors(event_recorder: list[tuple[str, dict]]) -> None:
    def _operation() -> None:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        retry_policy.run_with_retries(
            _operation, attempts=3, backoff_seconds=0, retry_on=(SearchFailure,), label="search"
        )

    assert event_recorder == []
