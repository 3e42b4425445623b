"""Date-range search submission with bounded retries."""
from __future__ import annotations

from playwright.sync_api import Error as PWError, TimeoutError as PWTimeout

from . import config
from .dom import SELECTORS, wait_seconds
from .errors import ErrorCode, SearchFailure
from .logging_utils import _scraper_event
from .models import SearchRange
from .retry_policy import run_with_retries
from .session import Session
from .utils import log_line, short_error_message


def _submit_once(session: Session, search_range: SearchRange) -> None:
    """Open the search page, fill both dates and submit the top form once."""

    page = session.page
    nav_timeout_ms = config.NAV_TIMEOUT_SECONDS * 1000
    selector_timeout_ms = config.SELECTOR_TIMEOUT_SECONDS * 1000

    _scraper_event("nav", step="goto", url=config.START_URL)
    try:
        page.goto(config.START_URL, wait_until="domcontentloaded", timeout=nav_timeout_ms)
        page.wait_for_load_state("domcontentloaded", timeout=nav_timeout_ms)
    except PWError as exc:
        raise SearchFailure(
            f"Navigation to search page failed: {short_error_message(exc)}",
            error_code=ErrorCode.SEARCH_NAVIGATION,
        ) from exc

    start_input = page.locator(SELECTORS.start_date_input)
    end_input = page.locator(SELECTORS.end_date_input)
    search_button = page.locator(SELECTORS.search_button)
    try:
        start_input.wait_for(state="visible", timeout=selector_timeout_ms)
        start_input.fill(search_range.start_date, timeout=selector_timeout_ms)
        end_input.fill(search_range.end_date, timeout=selector_timeout_ms)
        search_button.click(timeout=selector_timeout_ms)
    except PWError as exc:
        raise SearchFailure(
            f"Search controls not interactable: {short_error_message(exc)}",
            error_code=ErrorCode.SEARCH_CONTROLS,
        ) from exc

    try:
        page.wait_for_load_state("networkidle", timeout=nav_timeout_ms)
    except PWTimeout as exc:
        raise SearchFailure(
            f"Search results never settled: {short_error_message(exc)}",
            error_code=ErrorCode.SEARCH_TIMEOUT,
        ) from exc
    except PWError as exc:
        raise SearchFailure(
            f"Search navigation interrupted: {short_error_message(exc)}",
            error_code=ErrorCode.SEARCH_NAVIGATION,
        ) from exc

    # The results list mounts after the network goes idle.
    wait_seconds(page, config.SEARCH_SETTLE_SECONDS)


def submit_search(session: Session, search_range: SearchRange) -> None:
    """Submit *search_range*; raises ``SearchFailure`` once retries run out."""

    log_line(
        f"[SEARCH] Searching recorded dates {search_range.start_date} to {search_range.end_date}"
    )
    run_with_retries(
        lambda: _submit_once(session, search_range),
        attempts=config.SEARCH_MAX_ATTEMPTS,
        backoff_seconds=config.SEARCH_RETRY_BACKOFF_SECONDS,
        retry_on=(SearchFailure,),
        label="search",
    )
    _scraper_event(
        "search",
        phase="submitted",
        start_date=search_range.start_date,
        end_date=search_range.end_date,
    )


__all__ = ["submit_search"]
