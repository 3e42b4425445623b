"""Selectors for the Medina County AvaWeb recorder search."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MedinaSelectors:
    """CSS/XPath hints for the Angular recorder portal.

    The portal renders no stable ids for result data, so rows, sections and
    fields are located by class names and visible text. Two search buttons
    exist (top and bottom forms); only the top one is targeted.
    """

    # Search form
    start_date_input: str = 'input[formcontrolname="StartDate"]'
    end_date_input: str = 'input[formcontrolname="EndDate"]'
    search_button: str = '#topFormButtons button[form="searchForm"].yellow'

    # Overlays
    loading_backdrop: str = "#loadingBackDrop"

    # Result rows
    results_list: str = "div.searchResults"
    row: str = ".resultRow"
    row_summary: str = ".resultRowSummary"
    row_detail: str = ".resultRowDetail"
    row_detail_container: str = ".resultRowDetailContainer"
    document_no_button: str = ".resultRowDetailContainer div button"
    primary_content: str = "label.resultDetailPrimaryContent"
    document_icon: str = "i.fa-file-alt"

    # Detail sections
    section: str = "div.avaSection"
    sub_section: str = "resultDetailSubSection"
    sub_content: str = "resultDetailSubContent"

    # Document viewer and print workflow
    document_buttons: str = ".resultRowDetailContainer button"
    detail_container_ancestor: str = (
        "xpath=ancestor::div[contains(@class,'resultRowDetailContainer')]"
    )
    viewer_canvas: str = "canvas#imageCanvas"
    print_button: str = 'button[title="Print"]'
    print_dialog: str = "mat-dialog-container"
    entire_document_label: str = "Entire Document"
    radio_before_label: str = "xpath=preceding-sibling::input[@type='radio']"
    print_confirm_text: str = "OK"
    print_frame_id: str = "printJS"
    back_button: str = "div.backButton button"

    @property
    def print_frame(self) -> str:
        return f"iframe#{self.print_frame_id}"


MEDINA_SELECTORS = MedinaSelectors()

__all__ = [
    "MedinaSelectors",
    "MEDINA_SELECTORS",
]
