"""Sticky notes in the Review Evidence viewer."""
from __future__ import annotations

import logging
from typing import List, Mapping

from playwright.async_api import Page

from ccdcs_e2e.models import Note
from ccdcs_e2e.polling import poll_until

logger = logging.getLogger(__name__)

# A sticky note can hold several comments; each comment is one Note
_READ_COMMENTS = """
notes => notes.flatMap(note => Array.from(note.querySelectorAll(".stickyComment")).map(comment => {
  const text = selector => {
    const el = comment.querySelector(selector);
    return el ? el.innerText : "";
  };
  return {
    key: comment.getAttribute("id") || "",
    text: text(".commentText"),
    user: text(".commentUser"),
    share: text(".commentSharing"),
  };
}))
"""


def note_from_comment(comment: Mapping[str, str]) -> Note:
    return Note(
        note_text=comment.get("text", ""),
        note_user=comment.get("user", ""),
        note_share=comment.get("share", ""),
        note_key=comment.get("key") or None,
    )


class NotesPanel:
    """Notes rendered on the open document; satisfies ``NoteSource``."""

    NOTES_TIMEOUT = 20.0

    def __init__(self, page: Page) -> None:
        self.page = page
        self.menu_link = page.locator("#topLevelMenu #rmiAnnotations")
        self.sticky_notes = page.locator("#StickyNotes .stickyNote")

    async def count(self) -> int:
        return await self.sticky_notes.count()

    async def read_notes(self, expect_any: bool = True) -> List[Note]:
        """Read every note comment.

        Notes render after the page images, so with ``expect_any`` the panel
        is polled until at least one note shows up; otherwise an empty result
        would be indistinguishable from a page that has not finished loading.
        """
        if expect_any:
            await poll_until(
                self.count,
                timeout=self.NOTES_TIMEOUT,
                description="sticky notes",
                predicate=lambda count: count > 0,
            )
        comments = await self.sticky_notes.evaluate_all(_READ_COMMENTS)
        notes = [note_from_comment(comment) for comment in comments]
        logger.debug(f"Read {len(notes)} notes")
        return notes
