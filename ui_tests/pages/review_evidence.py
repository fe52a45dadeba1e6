"""Review Evidence popup: section index, documents and notes."""
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import List, Optional, Tuple

from playwright.async_api import Page

from ccdcs_e2e.errors import ExtractionTimeoutError
from ccdcs_e2e.models import Document, Note
from ccdcs_e2e.polling import poll_until
from ui_tests.pages.navigation import CaseNavigationBar
from ui_tests.pages.notes import NotesPanel

logger = logging.getLogger(__name__)

NO_DOCUMENT_NAME = "No available document: name"
NO_DOCUMENT_NUMBER = "No available document: number"

WRONG_POPUP_MARKERS = (
    "There are no documents in the paginated bundle",
    "The initial pagination for this bundle is underway",
)

_RESTRICTED_SUFFIX = re.compile(r"\s\(Restricted")
_LEADING_DIGITS = re.compile(r"^\s*([0-9]+)")

_PANEL_SETTLED = """
panelSelector => {
  const panel = document.querySelector(panelSelector);
  if (!panel) return false;
  return Array.from(panel.querySelectorAll('img[alt="Please wait ..."]'))
    .every(img => img.offsetParent === null);
}
"""

_POPUP_STATE = """
() => {
  const panel = document.querySelector("#bundleIndexDiv");
  return {
    body: document.body ? document.body.innerText : "",
    panelVisible: !!(panel && panel.offsetParent !== null),
  };
}
"""

_READ_SECTIONS = """
sections => sections.map(section => {
  const id = section.getAttribute("id") || "";
  const title = document.querySelector(`#sectionName-${id} .sectionTextName`);
  const docs = Array.from(document.querySelectorAll(`.sectionDocumentUl-${id} > li`)).map(li => {
    const text = selector => {
      const el = li.querySelector(selector);
      return el ? el.innerText : "";
    };
    const doc = li.classList.contains("documentLi") ? li : li.querySelector(".documentLi");
    return {
      name: text(".docTextName"),
      index: text(".docTextIndex"),
      id: doc ? doc.getAttribute("id") || "" : "",
    };
  });
  return {id, title: title ? title.innerText : "", docs};
})
"""


class PopupState(str, Enum):
    READY = "ready"
    WRONG_CONTENT = "wrong"
    LOADING = "loading"


def classify_review_popup(body_text: str, panel_visible: bool) -> PopupState:
    """Classify what the Review popup is currently showing.

    While a bundle is being paginated the popup opens on a notice page
    instead of the index; that popup never turns into the index and has to be
    reopened.
    """
    if any(marker in (body_text or "") for marker in WRONG_POPUP_MARKERS):
        return PopupState.WRONG_CONTENT
    if panel_visible:
        return PopupState.READY
    return PopupState.LOADING


def clean_section_title(raw: str) -> str:
    """``"Served Evidence (Restricted to ...)"`` -> ``"Served Evidence"``."""
    return _RESTRICTED_SUFFIX.split(raw or "", maxsplit=1)[0].strip()


def clean_document_name(raw: str) -> str:
    """Drop the trailing ``" (...)"`` page-count suffix from a document name."""
    name = raw or ""
    cut = name.rfind(" (")
    if cut > -1:
        name = name[:cut]
    return name.strip()


def parse_document_index(raw: str) -> str:
    """Document number from a ``.docTextIndex`` label such as ``"3. "``."""
    match = _LEADING_DIGITS.match(raw or "")
    return match.group(1) if match else (raw or "").strip()


def placeholder_document(section_title: str, section_id: Optional[str]) -> Document:
    """Stand-in record for a section the role can see but that has no documents."""
    return Document(
        section_title=section_title,
        document_name=NO_DOCUMENT_NAME,
        document_number=NO_DOCUMENT_NUMBER,
        section_id=section_id,
    )


class ReviewEvidencePage:
    """The Review Evidence popup; satisfies ``DocumentSource`` and ``NoteSource``."""

    PANEL_TIMEOUT = 70.0

    def __init__(self, page: Page) -> None:
        self.page = page
        self.section_panel = page.locator("#bundleIndexDiv")
        self.sections = self.section_panel.locator(".sectionLi")
        self.notes = NotesPanel(page)

    async def wait_for_panel(self) -> None:
        """Wait for the index panel and every per-section loader to finish."""
        try:
            await self.section_panel.wait_for(state="visible", timeout=self.PANEL_TIMEOUT * 1000)
            await self.page.wait_for_function(
                _PANEL_SETTLED, arg="#bundleIndexDiv", timeout=self.PANEL_TIMEOUT * 1000
            )
        except Exception as exc:
            raise ExtractionTimeoutError(
                f"Review Evidence section panel did not settle within {self.PANEL_TIMEOUT:.0f}s: {exc}"
            ) from exc

    async def read_documents(self) -> List[Document]:
        await self.wait_for_panel()
        raw_sections = await self.sections.evaluate_all(_READ_SECTIONS)
        if not raw_sections:
            raise ExtractionTimeoutError("Review Evidence section panel rendered no sections")

        documents: List[Document] = []
        for section in raw_sections:
            title = clean_section_title(section["title"])
            if not section["docs"]:
                documents.append(placeholder_document(title, section["id"]))
                continue
            for doc in section["docs"]:
                documents.append(
                    Document(
                        section_title=title,
                        document_name=clean_document_name(doc["name"]),
                        document_number=parse_document_index(doc["index"]),
                        section_id=section["id"],
                        document_id=doc["id"] or None,
                    )
                )
        logger.debug(f"Read {len(documents)} documents from {len(raw_sections)} sections")
        return documents

    async def read_notes(self) -> List[Note]:
        return await self.notes.read_notes()


async def _popup_state(popup: Page) -> PopupState:
    await popup.wait_for_function("() => !!document.body", timeout=30_000)
    observed = await popup.evaluate(_POPUP_STATE)
    return classify_review_popup(observed["body"], observed["panelVisible"])


async def open_review_popup(case_page: Page, timeout: float = 90.0) -> ReviewEvidencePage:
    """Open the Review popup from a case page and wait until it shows the index.

    A popup that is still loading is reused on the next attempt rather than
    opening another one. A popup showing the pagination notice is closed and
    reopened.

    Raises:
        PollTimeoutError: The index never appeared within ``timeout`` seconds.
    """
    navigation = CaseNavigationBar(case_page)

    async def attempt() -> Tuple[PopupState, Page]:
        existing = [p for p in case_page.context.pages if p is not case_page and not p.is_closed()]
        if existing:
            popup = existing[0]
        else:
            async with case_page.expect_popup() as popup_info:
                await navigation.navigate_to("Review")
            popup = await popup_info.value

        try:
            state = await _popup_state(popup)
        except Exception:
            if not popup.is_closed():
                await popup.close()
            raise

        if state is PopupState.WRONG_CONTENT:
            logger.info("Review popup opened on the pagination notice, reopening")
            await popup.close()
        return state, popup

    _, popup = await poll_until(
        attempt,
        timeout=timeout,
        description="Review Evidence popup",
        predicate=lambda result: result[0] is PopupState.READY,
        wrong_state=lambda result: result[0] is PopupState.WRONG_CONTENT,
        intervals=(1.0,),
    )
    return ReviewEvidencePage(popup)
