"""Sections list, section document tables and document upload."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from playwright.async_api import Page

from ccdcs_e2e.errors import ExtractionTimeoutError
from ccdcs_e2e.models import Document, normalize_document_number
from ccdcs_e2e.polling import poll_until
from ui_tests.pages.navigation import CaseNavigationBar
from ui_tests.pages.review_evidence import placeholder_document
from ui_tests.pages.update_documents import UpdateDocumentsPage

logger = logging.getLogger(__name__)

SECTION_ROWS = "table.formTable-zebra tbody > tr:not(:first-child)"
VIEW_DOCUMENTS = 'a.button-level-two[title*="view the list of documents"]'
DOCUMENT_ROWS = "table.formTable-zebra tbody tr:nth-child(n+3)"
VISIBLE_NAMES = "td.documentInContentsIndex span"
UPDATE_DOCUMENTS = re.compile(r"^\s*Update", re.IGNORECASE)

_SECTION_KEY = re.compile(r"sectionRowKey=([^&]+)")

_READ_SECTION_ROWS = """
rows => rows.map(row => {
  const cell = n => row.querySelector(`td:nth-child(${n})`);
  const link = row.querySelector('a.button-level-two[title*="view the list of documents"]');
  return {
    index: cell(2) ? cell(2).innerText : "",
    title: cell(3) ? cell(3).innerText : "",
    href: link ? link.getAttribute("href") || "" : "",
  };
})
"""

_READ_DOCUMENT_ROWS = """
rows => rows.map(row => {
  const name = row.querySelector("td:nth-child(4) > span:not([class^='documentRedacted'])");
  const number = row.querySelector("td:nth-child(3)");
  return {name: name ? name.innerText : "", number: number ? number.innerText : ""};
})
"""


@dataclass(frozen=True)
class SectionRow:
    """One row of a case's sections list."""

    index: str
    title: str
    section_id: str


def section_key_from_href(href: Optional[str]) -> str:
    match = _SECTION_KEY.search(href or "")
    return match.group(1) if match else ""


def parse_section_document_number(cell_text: str) -> str:
    """Section tables render the number with a trailing marker (``"007."``)."""
    text = (cell_text or "").strip()
    return normalize_document_number(text[:-1])


class SectionDocumentsPage:
    """Document table of one section."""

    TABLE_TIMEOUT = 30.0
    ROWS_TIMEOUT = 40.0

    def __init__(self, page: Page) -> None:
        self.page = page
        self.loader = page.locator("i", has_text="Fetching detail ...")
        self.table = page.locator(".formTable-zebra")

    async def wait_for_table(self) -> None:
        async def settled() -> bool:
            return not await self.loader.is_visible() and await self.table.first.is_visible()

        await poll_until(settled, timeout=self.TABLE_TIMEOUT, description="section documents table")
        try:
            await self.page.locator("table.formTable-zebra tbody tr:nth-child(n+2)").first.wait_for(
                state="visible", timeout=self.ROWS_TIMEOUT * 1000
            )
        except Exception as exc:
            raise ExtractionTimeoutError(f"Section documents table rendered no rows: {exc}") from exc

    async def read_documents(self, section_title: str, section_id: Optional[str] = None) -> List[Document]:
        """Documents of the open section, or its placeholder when it is empty."""
        await self.wait_for_table()
        raw_rows = await self.page.locator(DOCUMENT_ROWS).evaluate_all(_READ_DOCUMENT_ROWS)
        if not raw_rows:
            return [placeholder_document(section_title, section_id)]
        return [
            Document(
                section_title=section_title,
                document_name=row["name"],
                document_number=parse_section_document_number(row["number"]),
                section_id=section_id,
            )
            for row in raw_rows
        ]

    async def visible_document_names(self) -> List[str]:
        await self.wait_for_table()
        return [name.strip() for name in await self.page.locator(VISIBLE_NAMES).all_inner_texts()]

    async def go_to_upload(self) -> None:
        await self.page.get_by_role("link", name="Upload Document(s)").first.click()


class UploadDocumentPage:
    def __init__(self, page: Page) -> None:
        self.page = page
        self.file_input = page.locator('input[type="file"]')
        self.start_upload = page.locator("#uploader_start")

    async def upload(self, file_path: Union[str, Path], defendants: Sequence[str] = ()) -> None:
        """Upload one file, restricting it to ``defendants`` when given.

        Defendant checkboxes are labelled ``"Surname, First"`` in restricted
        sections.
        """
        for defendant in defendants:
            checkbox = self.page.get_by_role("checkbox", name=defendant)
            if not await checkbox.is_checked():
                await checkbox.check()
        await self.file_input.wait_for(state="attached")
        await self.file_input.set_input_files(str(file_path))
        await self.start_upload.click()
        await self.page.get_by_role("link", name="View Section Documents").first.click()


class SectionsPage:
    """Sections list of an open case; satisfies ``SectionDocumentSource`` and ``DocumentUploader``."""

    def __init__(self, page: Page) -> None:
        self.page = page
        self.navigation = CaseNavigationBar(page)
        self.documents = SectionDocumentsPage(page)

    async def open(self) -> None:
        await self.navigation.navigate_to("Sections")
        await self.page.locator(SECTION_ROWS).first.wait_for(state="visible", timeout=10_000)

    async def list_sections(self) -> List[SectionRow]:
        raw_rows = await self.page.locator(SECTION_ROWS).evaluate_all(_READ_SECTION_ROWS)
        return [
            SectionRow(
                index=row["index"].strip(),
                title=row["title"].strip(),
                section_id=section_key_from_href(row["href"]),
            )
            for row in raw_rows
        ]

    async def find_section(self, *, title: Optional[str] = None, index: Optional[str] = None,
                           section_id: Optional[str] = None) -> SectionRow:
        for row in await self.list_sections():
            if title is not None and row.title == title:
                return row
            if index is not None and row.index == index:
                return row
            if section_id is not None and row.section_id == section_id:
                return row
        raise LookupError(f"No section matching title={title!r} index={index!r} id={section_id!r}")

    async def open_section(self, row: SectionRow) -> None:
        await self.page.locator(f'{VIEW_DOCUMENTS}[href*="sectionRowKey={row.section_id}"]').first.click()

    async def open_update_documents(self, row: SectionRow) -> UpdateDocumentsPage:
        """Open the Update All Documents page from the section's row."""
        section_row = self.page.locator(SECTION_ROWS).filter(
            has=self.page.locator(f'a[href*="sectionRowKey={row.section_id}"]')
        )
        await section_row.get_by_role("link", name=UPDATE_DOCUMENTS).first.click()
        update = UpdateDocumentsPage(self.page)
        await update.wait_until_open()
        return update

    async def read_section_documents(self, section_title: str) -> List[Document]:
        await self.open()
        row = await self.find_section(title=section_title)
        await self.open_section(row)
        return await self.documents.read_documents(row.title, row.section_id)

    async def read_all_section_documents(self) -> List[Document]:
        """Documents of every section, in sections-list order."""
        await self.open()
        documents: List[Document] = []
        for row in await self.list_sections():
            await self.open_section(row)
            documents.extend(await self.documents.read_documents(row.title, row.section_id))
            await self.open()
        return documents

    async def upload_document(self, section_id: str, file_name: str, defendants: Sequence[str] = ()) -> None:
        from ui_tests.config import settings

        await self.open()
        row = await self.find_section(section_id=section_id)
        await self.open_section(row)
        await self.documents.wait_for_table()
        await self.documents.go_to_upload()
        await UploadDocumentPage(self.page).upload(settings.upload_path(file_name), defendants)
        logger.info(f"Uploaded {file_name} to section {row.index} ({row.title})")
