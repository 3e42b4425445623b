"""Capture a row's source document through the viewer's print workflow.

The portal has no download link. Its "print" button renders the whole
document into a hidden ``iframe#printJS`` whose ``src`` is a ``blob:`` URL
and then calls ``print()`` inside that frame. The capture steps:

1. open the viewer for the row's document number,
2. install print interception (host ``window.print`` plus a wrapped
   ``Node.prototype.appendChild`` that neutralises ``print`` on every
   iframe as soon as it loads); without it the native dialog blocks the
   browser thread,
3. request "Entire Document" from the print dialog,
4. read the blob back through the page as a base64 data URL and write it
   to ``PDF_DIR/<sanitized document no>.pdf``,
5. remove the print iframe and walk back to the results list.

``capture_document`` never raises: a missing attachment must not fail the
row that owns it.
"""
from __future__ import annotations

import base64
import binascii
from pathlib import Path
from typing import Optional

from playwright.sync_api import Error as PWError, Page, TimeoutError as PWTimeout

from . import config
from .dom import SELECTORS, dom_click, wait_for_backdrop_hidden, wait_seconds
from .errors import CaptureFailure, ErrorCode
from .hosting import ApifyClient
from .logging_utils import _scraper_event
from .session import Session
from .utils import log_line, sanitize_filename, short_error_message

# Failure classes the cleanup routine swallows. Anything else is a bug.
CLEANUP_SWALLOWED_ERRORS = (PWTimeout, PWError)

_INSTALL_PRINT_INTERCEPTION_JS = """
() => {
    window.print = function () { console.log('[medina] window.print suppressed'); };
    if (window.__medinaPrintInterception) {
        return false;
    }
    window.__medinaPrintInterception = true;
    const originalAppendChild = Node.prototype.appendChild;
    Node.prototype.appendChild = function (node) {
        if (node && node.tagName && node.tagName.toLowerCase() === 'iframe') {
            node.addEventListener('load', function () {
                try {
                    if (this.contentWindow) {
                        this.contentWindow.print = function () {
                            console.log('[medina] iframe print suppressed');
                        };
                    }
                } catch (e) {}
            });
        }
        return originalAppendChild.call(this, node);
    };
    return true;
}
"""

_CONFIRM_PRINT_DIALOG_JS = """
(args) => {
    const buttons = Array.from(document.querySelectorAll(args.dialog + ' button'));
    const confirm = buttons.find((b) => (b.textContent || '').trim() === args.text);
    if (!confirm) {
        return false;
    }
    confirm.click();
    return true;
}
"""

_FETCH_BLOB_AS_DATA_URL_JS = """
async (url) => {
    const response = await fetch(url);
    const blob = await response.blob();
    return await new Promise((resolve, reject) => {
        const reader = new FileReader();
        reader.onloadend = () => resolve(reader.result);
        reader.onerror = () => reject(reader.error);
        reader.readAsDataURL(blob);
    });
}
"""

_REMOVE_PRINT_FRAME_JS = "(frameId) => { const el = document.getElementById(frameId); if (el) { el.remove(); } }"


def document_filename(document_no: str) -> str:
    return f"{sanitize_filename(document_no)}.pdf"


def is_blob_url(value: Optional[str]) -> bool:
    return bool(value) and value.strip().lower().startswith("blob:")


def decode_data_url(data_url: str) -> bytes:
    """Decode the base64 payload of a ``data:`` URL (or a bare base64 string)."""

    if not data_url:
        raise CaptureFailure("Blob read returned no data", error_code=ErrorCode.CAPTURE_PAYLOAD)
    _, _, payload = data_url.partition(",") if "," in data_url else ("", "", data_url)
    try:
        return base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise CaptureFailure(
            f"Blob payload is not valid base64: {exc}",
            error_code=ErrorCode.CAPTURE_PAYLOAD,
        ) from exc


def install_print_interception(page: Page) -> bool:
    """Neutralise ``print`` on the host window and on every future iframe.

    Safe to call repeatedly: ``window.print`` is reset each time, the
    ``appendChild`` wrapper is installed once per page lifetime. Returns
    ``True`` when the wrapper was installed by this call.
    """

    installed = bool(page.evaluate(_INSTALL_PRINT_INTERCEPTION_JS))
    _scraper_event("capture", phase="print_interception", newly_installed=installed)
    return installed


def remove_print_frame(page: Page) -> None:
    page.evaluate(_REMOVE_PRINT_FRAME_JS, SELECTORS.print_frame_id)


def _open_viewer(page: Page, document_no: str) -> None:
    # Scope to the expanded row's own button; a page-wide icon match can
    # belong to a different row.
    doc_button = (
        page.locator(SELECTORS.document_buttons)
        .get_by_text(document_no, exact=True)
        .first
    )
    try:
        doc_button.wait_for(state="visible", timeout=config.DETAIL_TIMEOUT_MS)
    except PWTimeout as exc:
        raise CaptureFailure(
            "Document button for this row is not visible",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_CONTROL,
        ) from exc

    container = doc_button.locator(SELECTORS.detail_container_ancestor).first
    icon = container.locator(SELECTORS.document_icon).first
    if not icon.is_visible():
        raise CaptureFailure(
            "Row has no visible document icon",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_CONTROL,
        )

    dom_click(icon)
    try:
        page.locator(SELECTORS.viewer_canvas).wait_for(
            state="visible", timeout=config.VIEWER_TIMEOUT_MS
        )
    except PWTimeout as exc:
        raise CaptureFailure(
            "Document viewer did not render",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_VIEWER,
        ) from exc
    wait_seconds(page, config.VIEWER_SETTLE_SECONDS)


def _request_entire_document(page: Page, document_no: str) -> None:
    dom_click(page.locator(SELECTORS.print_button).first)

    dialog = page.locator(SELECTORS.print_dialog).first
    try:
        dialog.wait_for(state="visible", timeout=config.PRINT_DIALOG_TIMEOUT_MS)
    except PWTimeout as exc:
        raise CaptureFailure(
            "Print dialog did not open",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_DIALOG,
        ) from exc

    label = dialog.locator("span").get_by_text(SELECTORS.entire_document_label, exact=True).first
    # The radio input is visually hidden behind its styled label.
    label.locator(SELECTORS.radio_before_label).first.check(force=True)

    log_line(f"[CAPTURE] Requesting blob document for {document_no}...")
    # Confirm from script rather than a pointer click so a half-suppressed
    # native dialog cannot stall the automation call.
    confirmed = page.evaluate(
        _CONFIRM_PRINT_DIALOG_JS,
        {"dialog": SELECTORS.print_dialog, "text": SELECTORS.print_confirm_text},
    )
    if not confirmed:
        raise CaptureFailure(
            "Print dialog has no confirm button",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_DIALOG,
        )

    wait_seconds(page, config.VIEWER_SETTLE_SECONDS)
    page.keyboard.press("Escape")


def _read_print_frame(page: Page, document_no: str) -> bytes:
    frame = page.locator(SELECTORS.print_frame)
    try:
        frame.wait_for(state="attached", timeout=config.PRINT_FRAME_TIMEOUT_MS)
    except PWTimeout as exc:
        raise CaptureFailure(
            "Print frame never attached",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_FRAME,
        ) from exc

    src = frame.get_attribute("src") or ""
    if not is_blob_url(src):
        raise CaptureFailure(
            f"Print frame source is not a blob URL: {src[:60]!r}",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_FRAME,
        )

    payload = decode_data_url(page.evaluate(_FETCH_BLOB_AS_DATA_URL_JS, src))
    if not payload:
        raise CaptureFailure(
            "Blob is empty",
            document_no=document_no,
            error_code=ErrorCode.CAPTURE_PAYLOAD,
        )
    if not payload.startswith(b"%PDF"):
        log_line(f"[CAPTURE][WARN] Blob for {document_no} has no PDF header; keeping it as-is.")
    return payload


def return_to_results(page: Page) -> None:
    """Put the UI back where the row loop expects it. Never raises.

    ``CLEANUP_SWALLOWED_ERRORS`` are expected here: the print iframe may
    already be gone, the back button may be hidden, or the results list may
    be slow to remount. Anything else is logged as unexpected and dropped so
    ``capture_document`` keeps its contract.
    """

    steps = (
        ("remove_print_frame", lambda: remove_print_frame(page)),
        ("escape", lambda: page.keyboard.press("Escape")),
        ("back", lambda: _click_back(page)),
    )
    for name, step in steps:
        try:
            step()
        except CLEANUP_SWALLOWED_ERRORS as exc:
            _scraper_event("capture", phase="cleanup", step=name, error=short_error_message(exc))
        except Exception as exc:  # noqa: BLE001
            _scraper_event(
                "error",
                phase="cleanup_unexpected",
                step=name,
                error_type=type(exc).__name__,
                error=short_error_message(exc),
            )


def _click_back(page: Page) -> None:
    back = page.locator(SELECTORS.back_button).first
    if not back.is_visible():
        return
    dom_click(back)
    page.locator(SELECTORS.results_list).wait_for(state="visible", timeout=config.RESULTS_TIMEOUT_MS)
    wait_for_backdrop_hidden(page)


def _publish(payload: bytes, filename: str, local_path: Path, client: Optional[ApifyClient]) -> str:
    if client is None:
        return str(local_path)
    client.put_record(filename, payload, "application/pdf")
    return client.record_url(filename)


def capture_document(
    session: Session,
    document_no: str,
    *,
    client: Optional[ApifyClient] = None,
    pdf_dir: Optional[Path] = None,
) -> str:
    """Capture the document of the expanded row identified by *document_no*.

    Returns the local path (or the platform record URL when *client* is
    given), or ``""`` when anything along the way fails.
    """

    page = session.page
    filename = document_filename(document_no)
    target_dir = Path(pdf_dir or config.PDF_DIR)
    local_path = target_dir / filename

    try:
        _open_viewer(page, document_no)
        install_print_interception(page)
        _request_entire_document(page, document_no)
        payload = _read_print_frame(page, document_no)

        target_dir.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(payload)
        log_line(f"[CAPTURE] Saved {filename} ({len(payload) / 1024:.1f} KiB) -> {local_path}")
        remove_print_frame(page)

        location = _publish(payload, filename, local_path, client)
        _scraper_event("capture", phase="done", document_no=document_no, bytes=len(payload), location=location)
        return location
    except Exception as exc:  # noqa: BLE001
        _scraper_event(
            "error",
            phase="capture",
            document_no=document_no,
            error_code=getattr(exc, "error_code", ErrorCode.INTERNAL),
            error=short_error_message(exc),
        )
        log_line(f"[CAPTURE] Document capture failed for {document_no}: {short_error_message(exc)}")
        return ""
    finally:
        return_to_results(page)


__all__ = [
    "CLEANUP_SWALLOWED_ERRORS",
    "capture_document",
    "decode_data_url",
    "document_filename",
    "install_print_interception",
    "is_blob_url",
    "remove_print_frame",
    "return_to_results",
]
