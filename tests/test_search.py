from __future__ import annotations

import pytest
from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout

from app.scraper import config, search
from app.scraper.errors import ErrorCode, SearchFailure
from app.scraper.models import SearchRange
from tests.fakes import FakeLocator, FakePage, make_session

START = 'input[formcontrolname="StartDate"]'
END = 'input[formcontrolname="EndDate"]'
BUTTON = '#topFormButtons button[form="searchForm"].yellow'


@pytest.fixture(autouse=True)
def _fast_search(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "SEARCH_SETTLE_SECONDS", 0)
    monkeypatch.setattr(config, "SEARCH_RETRY_BACKOFF_SECONDS", 0)
    monkeypatch.setattr(config, "SEARCH_MAX_ATTEMPTS", 3)


def _search_page(**kwargs) -> FakePage:
    calls: list = []
    return FakePage(
        {
            START: FakeLocator(START, calls=calls),
            END: FakeLocator(END, calls=calls),
            BUTTON: FakeLocator(BUTTON, calls=calls),
        },
        **kwargs,
    )


def test_submit_once_fills_both_dates_and_clicks_top_button() -> None:
    page = _search_page()

    search._submit_once(make_session(page), SearchRange("01/01/2024", "01/31/2024"))

    calls = page.locators[START].calls
    assert ("fill", START, "01/01/2024") in calls
    assert ("fill", END, "01/31/2024") in calls
    assert ("click", BUTTON) in calls
    assert ("goto", config.START_URL, "domcontentloaded") in page.calls
    assert ("load_state", "networkidle") in page.calls


def test_submit_once_maps_missing_controls_to_search_failure() -> None:
    page = _search_page()
    page.locators[START].wait_errors["visible"] = PWTimeout("form never rendered")

    with pytest.raises(SearchFailure) as excinfo:
        search._submit_once(make_session(page), SearchRange("01/01/2024", "01/31/2024"))

    assert excinfo.value.error_code == ErrorCode.SEARCH_CONTROLS


def test_submit_once_maps_network_idle_timeout() -> None:
    page = _search_page(load_state_errors={"networkidle": PWTimeout("still loading")})

    with pytest.raises(SearchFailure) as excinfo:
        search._submit_once(make_session(page), SearchRange("01/01/2024", "01/31/2024"))

    assert excinfo.value.error_code == ErrorCode.SEARCH_TIMEOUT


def test_submit_search_retries_then_succeeds(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts: list[int] = []

    def _flaky(session, search_range):
        attempts.append(1)
        if len(attempts) < 3:
            raise SearchFailure("controls hidden", error_code=ErrorCode.SEARCH_CONTROLS)

    monkeypatch.setattr(search, "_submit_once", _flaky)

    search.submit_search(make_session(FakePage()), SearchRange("01/01/2024", "01/31/2024"))

    assert len(attempts) == 3


def test_submit_search_gives_up_after_max_attempts(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts: list[int] = []

    def _broken(session, search_range):
        attempts.append(1)
        raise SearchFailure("portal down", error_code=ErrorCode.SEARCH_NAVIGATION)

    monkeypatch.setattr(search, "_submit_once", _broken)

    with pytest.raises(SearchFailure):
        search.submit_search(make_session(FakePage()), SearchRange("01/01/2024", "01/31/2024"))

    assert len(attempts) == 3


def test_interrupted_results_load_is_retried_as_search_failure() -> None:
    page = _search_page(
        load_state_errors={"networkidle": PWError("net::ERR_ABORTED; navigation interrupted")}
    )

    with pytest.raises(SearchFailure) as excinfo:
        search.submit_search(make_session(page), SearchRange("01/01/2024", "01/31/2024"))

    assert excinfo.value.error_code == ErrorCode.SEARCH_NAVIGATION
    assert len([call for call in page.calls if call[0] == "goto"]) == 3
