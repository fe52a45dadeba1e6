"""Site and case navigation bars."""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from playwright.async_api import Locator, Page, TimeoutError as PlaywrightTimeout

from ccdcs_e2e.models import NavLink
from ui_tests.browser import ToolError

# key -> (accessible name, exact)
SITE_LINKS: Dict[str, Tuple[str, bool]] = {
    "Home": ("Home", False),
    "Accessibility": ("Accessibility", False),
    "LogOn": ("Log On", False),
    "Register": ("Register", False),
    "ContactUs": ("Contact Us", False),
    "Guidance": ("Guidance", True),
    "AccountDetails": ("Account Details", False),
    "LogOff": ("Log Off", False),
    "ViewCaseListLink": ("View Case List", False),
    "ApprovalRequests": ("Approval Requests", False),
    "Admin": ("Admin", False),
}

CASE_LINKS: Dict[str, Tuple[str, bool]] = {
    "CaseHome": ("Case Home", False),
    "Review": ("Review", False),
    "Index": ("Index", False),
    "Access": ("Access", True),
    "Bundle": ("Bundle", True),
    "Search": ("Search", False),
    "Memos": ("Memos", False),
    "Notes": ("Notes", False),
    "Hyperlinks": ("Hyperlinks", False),
    "Ingest": ("Ingest", False),
    "LinkedCases": ("Linked Cases", False),
    "ShownToJury": ("Shown to Jury", False),
    "ROCA": ("ROCA", False),
    "LAA": ("LAA", False),
    "PTPH": ("PTPH", False),
    "Indictment": ("Indictment", False),
    "Split": ("Split", False),
    "Merge": ("Merge", False),
}

# Buttons whose link text is shared with other page content
CASE_BUTTONS: Dict[str, str] = {
    "Sections": 'a.button[title*="View the list of sections"]',
    "People": 'a.button[title*="View the list of people associated with this case."]',
}


class NavigationBar:
    """Top navigation shown on every page."""

    def __init__(self, page: Page) -> None:
        self.page = page

    def link(self, key: str) -> Locator:
        if key not in SITE_LINKS:
            raise ToolError(name="navigate", payload={"link": key}, message="not in the navigation bar")
        name, exact = SITE_LINKS[key]
        return self.page.get_by_role("link", name=name, exact=exact)

    async def navigate_to(self, key: str) -> None:
        await self.link(key).first.click()

    async def log_off(self, attempts: int = 2, timeout_ms: int = 10_000) -> None:
        """Click Log Off until the Log On link shows up again."""
        for _ in range(attempts):
            await self.link("LogOff").first.click()
            try:
                await self.link("LogOn").first.wait_for(state="visible", timeout=timeout_ms)
                return
            except PlaywrightTimeout:
                continue
        raise ToolError(name="log_off", payload={"attempts": attempts}, message="Log Off was unsuccessful")


class CaseNavigationBar:
    """Navigation inside an open case."""

    def __init__(self, page: Page) -> None:
        self.page = page

    def link(self, key: str) -> Locator:
        if key in CASE_BUTTONS:
            return self.page.locator(CASE_BUTTONS[key])
        if key not in CASE_LINKS:
            raise ToolError(name="navigate", payload={"link": key}, message="not in the case navigation bar")
        name, exact = CASE_LINKS[key]
        return self.page.get_by_role("link", name=name, exact=exact)

    async def navigate_to(self, key: str) -> None:
        await self.link(key).first.click()


async def check_nav_link(page: Page, link: NavLink, case: bool = False) -> Optional[str]:
    """Click ``link`` and return an issue line if it lands in the wrong place.

    External and popup links open a new window, which is checked and closed;
    internal links navigate the current page.
    """
    bar = CaseNavigationBar(page) if case else NavigationBar(page)
    locator = bar.link(link.name).first

    if link.external or link.popup:
        async with page.expect_popup() as popup_info:
            await locator.click()
        popup = await popup_info.value
        try:
            await popup.wait_for_load_state("domcontentloaded")
            if link.external:
                landed = popup.url.startswith(link.expected_url)
            else:
                landed = link.expected_url.lower() in popup.url.lower()
            if not landed:
                return f"{link.name}: expected popup at {link.expected_url}, got {popup.url}"
        finally:
            await popup.close()
        return None

    await locator.click()
    await page.wait_for_load_state("domcontentloaded")
    if link.expected_url.lower() not in page.url.lower():
        return f"{link.name}: expected URL containing {link.expected_url}, got {page.url}"
    if link.expected_title is not None:
        title = await page.title()
        if title != link.expected_title:
            return f"{link.name}: expected title {link.expected_title!r}, got {title!r}"
    return None
