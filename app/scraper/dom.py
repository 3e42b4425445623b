"""Generic DOM primitives shared by the search, row and capture steps.

Section and label lookups work in two halves: one ``evaluate`` call takes a
raw snapshot of the section (label/sibling text pairs, or the ordered list of
sub-section markers and sub-content items), then plain Python picks the
value out of the snapshot. The matching rules therefore do not depend on the
automation driver and are unit-tested without a browser.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from playwright.sync_api import Error as PWError, Locator, Page

from . import config
from .logging_utils import _scraper_event
from .models import clean_values
from .selectors_medina import MEDINA_SELECTORS
from .utils import short_error_message

SELECTORS = MEDINA_SELECTORS

# [label text, next sibling text] for every label inside a section.
_LABEL_PAIRS_JS = """
(section) => Array.from(section.querySelectorAll('label')).map((label) => [
    (label.textContent || '').trim(),
    ((label.nextElementSibling && label.nextElementSibling.textContent) || '').trim(),
])
"""

# [is marker, text] for sub-section markers and sub-content items, DOM order.
_SECTION_ITEMS_JS = """
(section, classes) => Array.from(
    section.querySelectorAll('.' + classes.marker + ', .' + classes.content)
).map((el) => [el.classList.contains(classes.marker), el.textContent || ''])
"""

LabelPair = Tuple[str, str]
SectionItem = Tuple[bool, str]


def wait_seconds(page: Optional[Page], seconds: float) -> None:
    """Wait safely for ``seconds`` only if *page* remains open."""

    if page is None or seconds is None or seconds <= 0:
        return
    if not page.is_closed():
        page.wait_for_timeout(int(seconds * 1000))


def read_text(locator: Locator) -> str:
    return (locator.text_content() or "").strip()


def wait_for_backdrop_hidden(page: Page, timeout_ms: Optional[int] = None) -> None:
    """Block until the loading overlay is gone; no-op when it is not mounted."""

    backdrop = page.locator(SELECTORS.loading_backdrop)
    if backdrop.count() == 0:
        return
    backdrop.wait_for(
        state="hidden",
        timeout=timeout_ms if timeout_ms is not None else config.BACKDROP_TIMEOUT_MS,
    )


def dom_click(locator: Locator, timeout_ms: Optional[int] = None) -> None:
    """Click *locator*, falling back to a script-level ``el.click()``.

    The portal animates panels and overlays, so the pointer click is often
    intercepted. The DOM click fires the same Angular handler without any
    hit-testing.
    """

    locator.scroll_into_view_if_needed()
    try:
        locator.click(timeout=timeout_ms if timeout_ms is not None else config.CLICK_TIMEOUT_MS)
    except PWError as exc:
        _scraper_event("dom", phase="click_fallback", error=short_error_message(exc))
        locator.evaluate("el => el.click()")


def find_section_by_header(panel: Locator, header: str) -> Optional[Locator]:
    """Return the first section in *panel* whose text contains *header*."""

    section = panel.locator(SELECTORS.section).filter(has_text=header).first
    if section.count() == 0:
        return None
    return section


def pick_label_value(pairs: Sequence[Sequence[str]], key: str) -> str:
    """Return the sibling text of the first label starting with *key*."""

    for pair in pairs or ():
        if len(pair) < 2:
            continue
        label, value = pair[0], pair[1]
        if (label or "").strip().startswith(key):
            return (value or "").strip()
    return ""


def collect_sublist_after_marker(items: Sequence[Sequence], marker: str) -> List[str]:
    """Return the content items between the *marker* sub-section and the next one.

    The first marker whose text contains *marker* opens the block; the block
    ends at the following marker or at the end of the section.
    """

    start = None
    for index, item in enumerate(items or ()):
        is_marker, text = bool(item[0]), item[1]
        if is_marker and marker in (text or "").strip():
            start = index
            break
    if start is None:
        return []

    collected: List[str] = []
    for is_marker, text in list(items)[start + 1:]:
        if is_marker:
            break
        collected.append(text)
    return list(clean_values(collected))


def find_label_value(panel: Locator, header: str, key: str) -> str:
    """Scalar field lookup: section by *header*, then label starting with *key*."""

    section = find_section_by_header(panel, header)
    if section is None:
        return ""
    pairs = section.evaluate(_LABEL_PAIRS_JS) or []
    return pick_label_value(pairs, key)


def collect_section_values(panel: Locator, header: str, marker: Optional[str] = None) -> List[str]:
    """List field lookup.

    Without *marker* every sub-content item of the section is returned;
    with it only the items of that sub-section are.
    """

    section = find_section_by_header(panel, header)
    if section is None:
        return []

    if not marker:
        texts = section.locator(f".{SELECTORS.sub_content}").all_text_contents()
        return list(clean_values(texts))

    items = section.evaluate(
        _SECTION_ITEMS_JS,
        {"marker": SELECTORS.sub_section, "content": SELECTORS.sub_content},
    ) or []
    return collect_sublist_after_marker(items, marker)


__all__ = [
    "SELECTORS",
    "wait_seconds",
    "read_text",
    "wait_for_backdrop_hidden",
    "dom_click",
    "find_section_by_header",
    "pick_label_value",
    "collect_sublist_after_marker",
    "find_label_value",
    "collect_section_values",
]
