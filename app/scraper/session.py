"""Browser session lifecycle: one browser, one isolated context, one page."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Error as PWError,
    Page,
    Playwright,
    sync_playwright,
)

from . import config
from .errors import FatalInitError
from .logging_utils import _scraper_event
from .utils import log_line, short_error_message


@dataclass
class Session:
    """Handles owned by a single run; passed explicitly to every step."""

    playwright: Playwright
    browser: Browser
    context: BrowserContext
    page: Page


def _launch_browser(playwright: Playwright, headless: bool) -> Browser:
    """Launch the preferred channel, falling back once to bundled Chromium."""

    options = {
        "headless": headless,
        "timeout": config.LAUNCH_TIMEOUT_MS,
        "args": list(config.BROWSER_ARGS),
    }
    channel = config.BROWSER_CHANNEL
    if channel:
        try:
            browser = playwright.chromium.launch(channel=channel, **options)
            _scraper_event("session", phase="launch", channel=channel, headless=headless)
            return browser
        except PWError as exc:
            log_line(
                f"[SESSION] Channel {channel!r} unavailable ({short_error_message(exc)}); "
                "falling back to bundled Chromium."
            )

    try:
        browser = playwright.chromium.launch(**options)
    except PWError as exc:
        raise FatalInitError(f"Browser launch failed: {short_error_message(exc)}") from exc
    _scraper_event("session", phase="launch", channel="bundled", headless=headless)
    return browser


def _close_quietly(name: str, closer: Callable[[], None]) -> None:
    try:
        closer()
    except Exception as exc:  # noqa: BLE001
        _scraper_event("session", phase="teardown", target=name, error=short_error_message(exc))


def start_session(headless: Optional[bool] = None) -> Session:
    """Start Playwright, the browser, a context and the page.

    The context tolerates the portal's invalid certificate chain. Any
    failure here is fatal for the run and raised as ``FatalInitError``.
    """

    headless = config.HEADLESS if headless is None else headless
    try:
        playwright = sync_playwright().start()
    except PWError as exc:
        raise FatalInitError(f"Playwright failed to start: {short_error_message(exc)}") from exc

    browser: Optional[Browser] = None
    try:
        browser = _launch_browser(playwright, headless)
        context = browser.new_context(ignore_https_errors=True)
        page = context.new_page()
        page.set_default_timeout(config.DEFAULT_TIMEOUT_MS)
    except (FatalInitError, PWError) as exc:
        if browser is not None:
            _close_quietly("browser", browser.close)
        _close_quietly("playwright", playwright.stop)
        if isinstance(exc, FatalInitError):
            raise
        raise FatalInitError(f"Browser context failed: {short_error_message(exc)}") from exc

    log_line("[SESSION] Browser session started.")
    return Session(playwright=playwright, browser=browser, context=context, page=page)


def stop_session(session: Optional[Session]) -> None:
    """Release context, page and browser in that order; never raises."""

    if session is None:
        return
    _close_quietly("context", session.context.close)
    _close_quietly("page", session.page.close)
    _close_quietly("browser", session.browser.close)
    _close_quietly("playwright", session.playwright.stop)
    log_line("[SESSION] Browser session stopped.")


__all__ = ["Session", "start_session", "stop_session"]
