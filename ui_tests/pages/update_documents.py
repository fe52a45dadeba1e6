"""Update All Documents page of a section: remove, move or retitle its documents."""
from __future__ import annotations

import logging
import random
from typing import Iterable, Optional, Sequence

from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from ccdcs_e2e.polling import poll_until
from ui_tests.browser import ToolError, accept_dialogs

logger = logging.getLogger(__name__)

SECTION_SELECT = "#sectionSelect"
CONFIRM_MOVE = "a[href^='javascript:moveDocument']"
DOCUMENT_TITLE = 'textarea.userInput[id*="name"]'


def move_option_label(section_index: str, labels: Iterable[str]) -> str:
    """Label of the move target for ``section_index``.

    The target dropdown labels sections ``"<index>: <title>"``
    (``"B: Indictment"``).

    Raises:
        LookupError: The section is not offered as a target.
    """
    prefix = f"{section_index}:"
    for label in labels:
        label = label.strip()
        if label.startswith(prefix):
            return label
    raise LookupError(f"Section {section_index} is not offered as a move target")


def pick_move_destination(
    candidates: Sequence[str], exclude: Iterable[str], rng: Optional[random.Random] = None
) -> str:
    """Random section of ``candidates`` that is not in ``exclude``.

    Callers exclude the source sections and earlier destinations, so every
    moved document lands in a section of its own.
    """
    excluded = set(exclude)
    available = [section for section in candidates if section not in excluded]
    if not available:
        raise LookupError(f"No move target left among {list(candidates)} once {sorted(excluded)} are excluded")
    return (rng or random).choice(available)


class UpdateDocumentsPage:
    DIALOG_TIMEOUT = 2.0
    RETRY_DIALOG_TIMEOUT = 30.0

    def __init__(self, page: Page) -> None:
        self.page = page
        self.heading = page.get_by_role("heading", name="Update All Documents", level=3)
        self.remove_link = page.get_by_role("link", name="Remove")
        self.move_link = page.get_by_role("link", name="Move", exact=True)
        self.section_select = page.locator(SECTION_SELECT)
        self.confirm_move = page.locator(CONFIRM_MOVE)
        self.document_title = page.locator(DOCUMENT_TITLE)
        self.saving = page.get_by_role("img", name="working")

    async def wait_until_open(self) -> None:
        await self.heading.wait_for(state="visible", timeout=20_000)

    async def remove_first_document(self) -> None:
        """Remove the first document of the section and confirm the dialog.

        The Remove link sometimes swallows the first click, so it is clicked
        once more when no confirmation shows up.

        Raises:
            ToolError: No confirmation dialog appeared after either click.
        """
        remove = self.remove_link.first
        await remove.wait_for(state="visible", timeout=10_000)
        accepted = await accept_dialogs(self.page, remove.click, expected=1, timeout=self.DIALOG_TIMEOUT)
        if not accepted:
            logger.info("No removal dialog after the first click, clicking Remove again")
            accepted = await accept_dialogs(self.page, remove.click, expected=1, timeout=self.RETRY_DIALOG_TIMEOUT)
        if not accepted:
            raise ToolError(name="remove_document", payload={"url": self.page.url},
                            message="Removal was never confirmed")

    async def move_first_document(self, section_index: str) -> str:
        """Move the first document of the section to ``section_index``; returns the target label."""
        await self.move_link.first.click()
        await self.section_select.wait_for(state="visible", timeout=10_000)
        label = move_option_label(section_index, await self.section_select.locator("option").all_inner_texts())
        await self.section_select.select_option(label=label)
        await self.confirm_move.click()
        logger.info(f"Moved document to section {label}")
        return label

    async def rename_first_document(self, new_name: str) -> None:
        """Retitle the first document; the title saves itself when the field loses focus."""
        title = self.document_title.first
        await title.focus()
        await title.fill(new_name)
        await title.press("Tab")
        try:
            await self.saving.wait_for(state="visible", timeout=15_000)
            await self.saving.wait_for(state="hidden", timeout=30_000)
        except PlaywrightTimeout:
            logger.warning("Save indicator never showed after renaming a document")

        async def saved() -> bool:
            return await title.input_value() == new_name

        await poll_until(saved, timeout=30.0, description=f"document renamed to {new_name}")
