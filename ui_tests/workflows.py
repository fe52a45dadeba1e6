"""Reusable CCDCS workflows for the journeys: login, case search, case setup, document updates and cleanup."""
from __future__ import annotations

import random
from datetime import date
from typing import List, Optional, Sequence, Tuple

from playwright.async_api import Locator, Page, TimeoutError as PlaywrightTimeout

from ccdcs_e2e.adapters import RocaTable
from ccdcs_e2e.catalogue import CaseTemplate, load_case_template
from ccdcs_e2e.models import RocaEntry
from ccdcs_e2e.polling import poll_until, retry_action, run_cleanup_safely
from ccdcs_e2e.roles import RoleLike, parse_role
from ui_tests.browser import Browser, ToolError, accept_dialogs
from ui_tests.config import settings
from ui_tests.pages.navigation import CaseNavigationBar, NavigationBar
from ui_tests.pages.review_evidence import ReviewEvidencePage
from ui_tests.pages.roca import RocaPage
from ui_tests.pages.section_documents import SectionsPage
from ui_tests.pages.update_documents import UpdateDocumentsPage
from ui_tests.parallel_session_manager import run_as_admin
from ui_tests.users import credentials_for

CASE_INDEX_PATH = "Case/CaseIndex?currentFirst=1&displaySize=10"
NO_CASES_TEXT = "There are no cases on the system"


# ---- login -------------------------------------------------------------------

async def accept_cookies(browser: Browser) -> None:
    if await browser.is_visible(".cb-enable"):
        await browser.click(".cb-enable")


async def _submit_login(browser: Browser, username: str, password: str) -> None:
    await browser.fill("#UserName", username)
    await browser.fill("#Password", password)
    await browser.click(".button-level-two")


async def login(browser: Browser, role: RoleLike) -> Browser:
    """Log in as the test account of ``role`` from the home page.

    The login form sometimes renders without its fields wired up and comes
    back with field validation errors; the submission is repeated once in that
    case. A login summary error is a real failure.
    """
    role = parse_role(role)
    creds = credentials_for(role)
    print(f"[SESSION] Logging in as {role.value} ({creds.username})")

    await browser.goto(settings.base_url)
    navigation = NavigationBar(browser.page)
    if await navigation.link("LogOff").first.is_visible():
        await navigation.log_off()
    await navigation.navigate_to("LogOn")
    await _submit_login(browser, creds.username, creds.password)

    field_error = await browser.is_visible("#UserName_validationMessage") or await browser.is_visible(
        "#Password_validationMessage"
    )
    if field_error:
        print("[SESSION] Login fields were not registered, retrying login")
        await _submit_login(browser, creds.username, creds.password)
    elif await browser.is_visible("#validationSummary"):
        summary = await browser.text("#validationSummary")
        raise ToolError(name="login", payload={"role": role.value}, message=summary.strip())

    await accept_cookies(browser)
    try:
        await navigation.link("LogOff").first.wait_for(state="visible", timeout=30_000)
    except PlaywrightTimeout as exc:
        raise ToolError(name="login", payload={"role": role.value}, message="Log Off link never appeared") from exc
    return browser


# ---- case search ---------------------------------------------------------------

def case_row(page: Page, search_text: str) -> Locator:
    return page.locator(f'tr:has(td.tableText:has-text("{search_text}"))')


async def search_case(browser: Browser, search_text: str, court_house: Optional[str] = None) -> Locator:
    """Filter the case list and return the matching row.

    Apply Filter occasionally does nothing on the first click, so it is
    clicked up to twice.

    Raises:
        LookupError: No row matched after both attempts.
    """
    page = browser.page
    await browser.goto(settings.url(CASE_INDEX_PATH))
    await browser.select("#locationSelect", court_house or settings.court_house)
    await page.locator("#searchText").clear()
    await browser.fill("#searchText", search_text)
    for checkbox in ("#fromDateCheck", "#toDateCheck"):
        box = page.locator(checkbox)
        if await box.count() and await box.is_checked():
            await box.uncheck()

    row = case_row(page, search_text)
    for _ in range(2):
        await browser.click_link("Apply Filter")
        try:
            await row.first.wait_for(state="visible", timeout=5_000)
            return row.first
        except PlaywrightTimeout:
            continue
    raise LookupError(f"Case {search_text!r} not found in {court_house or settings.court_house}")


async def open_case(browser: Browser, case_name: str, court_house: Optional[str] = None) -> Browser:
    """Search for ``case_name`` and open its case home page."""
    row = await search_case(browser, case_name, court_house)
    update = row.get_by_role("link", name="Update Case")
    await update.wait_for(state="visible", timeout=5_000)
    await update.click()
    return browser


async def open_case_sections(browser: Browser, case_name: str) -> SectionsPage:
    await open_case(browser, case_name)
    sections = SectionsPage(browser.page)
    await sections.open()
    return sections


async def open_review_evidence(
    browser: Browser, search_text: str, court_house: Optional[str] = None
) -> ReviewEvidencePage:
    """Open Review Evidence from the case list row and wait for its index."""
    row = await search_case(browser, search_text, court_house)
    async with browser.page.expect_popup() as popup_info:
        await row.get_by_role("link", name="Review Evidence").click()
    review = ReviewEvidencePage(await popup_info.value)
    await review.wait_for_panel()
    return review


# ---- case setup ----------------------------------------------------------------

def generate_case_name(template: CaseTemplate, rng: Optional[random.Random] = None) -> Tuple[str, str]:
    number = (rng or random.Random()).randint(1000, 10999)
    return f"{template.name_prefix}{number}", f"{template.urn_prefix}{number}"


async def _add_defendant(page: Page, surname: str, first_name: str, dob_month: str, urn: str) -> None:
    await page.get_by_role("link", name="Add Defendant").click()
    await page.locator("#Surname").fill(surname)
    await page.locator("#FirstName").fill(first_name)
    await page.locator("#DobDay").select_option("1")
    await page.locator("#DobMonth").select_option(dob_month)
    await page.locator("#DobYear").select_option("1990")
    urn_field = page.locator("#Urn")
    # Only CPS prosecuted cases take a defendant URN
    if await urn_field.is_enabled():
        await urn_field.fill(urn)
    await page.get_by_role("button", name="Add").click()


async def _invite_participant(page: Page, username: str, defendants: Sequence[str]) -> None:
    await page.get_by_role("link", name="Invite New Participant").first.click()
    email = page.get_by_role("textbox", name="Person's Email")
    await email.wait_for(state="visible", timeout=30_000)
    await email.fill(username)
    await page.get_by_role("link", name="Select").click()
    await page.get_by_role("radio").first.click()
    for defendant in defendants:
        await page.get_by_role("checkbox", name=f"{defendant} -").check()
    await page.get_by_role("button", name="Invite").click()


async def create_case(browser: Browser, template: Optional[CaseTemplate] = None) -> str:
    """Create a throwaway case with the template's defendants and participants.

    Must be called while logged in as a role that can create cases. Leaves
    the browser on the case's Sections page.

    Returns:
        The generated case name.
    """
    template = template or load_case_template()
    page = browser.page
    case_name, urn = generate_case_name(template)

    await browser.goto(settings.url(CASE_INDEX_PATH))
    await browser.click_link("Create a Case")
    await browser.fill("#Name", case_name)
    await browser.fill("#txtUrn", urn)

    prosecutors = [label.strip() for label in await page.locator("#ddCaseProsecutedBy option").all_text_contents()]
    prosecutors = [label for label in prosecutors if label]
    if not prosecutors:
        raise ToolError(name="create_case", payload={"case": case_name}, message="No prosecuting authorities listed")
    await page.locator("#ddCaseProsecutedBy").select_option(label=random.choice(prosecutors))
    await page.locator("#CourtHouse").select_option(label=settings.court_house)

    today = date.today()
    await page.locator("#HearingDateDay").select_option(label=str(today.day))
    await page.locator("#HearingDateMonth").select_option(label=today.strftime("%B"))
    await page.locator("#HearingDateYear").select_option(label=str(today.year))
    await page.get_by_role("button", name="Create").click()
    print(f"[CASE] Created {case_name}")

    for defendant in template.defendants:
        await _add_defendant(page, defendant.surname, defendant.first_name, defendant.dob_month, urn)

    navigation = CaseNavigationBar(page)
    await navigation.navigate_to("People")
    for role_name, defendants in template.participants.items():
        await _invite_participant(page, credentials_for(role_name).username, defendants)
    await page.get_by_role("heading", level=3, name="People Index").wait_for(state="visible", timeout=20_000)

    await SectionsPage(page).open()
    return case_name


async def upload_document(
    browser: Browser,
    section_index: str,
    file_stem: str,
    defendants: Sequence[str] = (),
) -> None:
    """Upload ``<file_stem>.pdf`` into the section with index ``section_index``.

    ``defendants`` are upload-dialog labels (``"One, Defendant"``).
    """
    sections = SectionsPage(browser.page)
    await sections.open()
    row = await sections.find_section(index=section_index)
    await sections.upload_document(row.section_id, f"{file_stem}.pdf", defendants)


async def open_update_documents(browser: Browser, section_index: str) -> UpdateDocumentsPage:
    sections = SectionsPage(browser.page)
    await sections.open()
    return await sections.open_update_documents(await sections.find_section(index=section_index))


async def remove_document(browser: Browser, section_index: str) -> None:
    """Remove the first document of section ``section_index`` of the open case."""
    update = await open_update_documents(browser, section_index)
    await update.remove_first_document()
    print(f"[CASE] Removed a document from section {section_index}")


async def move_document(browser: Browser, section_index: str, new_section_index: str) -> None:
    """Move the first document of section ``section_index`` to ``new_section_index``."""
    update = await open_update_documents(browser, section_index)
    await update.move_first_document(new_section_index)
    print(f"[CASE] Moved a document from section {section_index} to {new_section_index}")


async def rename_document(browser: Browser, section_index: str, new_name: str) -> None:
    update = await open_update_documents(browser, section_index)
    await update.rename_first_document(new_name)
    print(f"[CASE] Renamed a document in section {section_index} to {new_name!r}")


async def visible_in_section(browser: Browser, section_index: str) -> List[str]:
    """Document names listed in section ``section_index`` of the open case."""
    sections = SectionsPage(browser.page)
    await sections.open()
    await sections.open_section(await sections.find_section(index=section_index))
    return await sections.documents.visible_document_names()


async def read_case_roca(browser: Browser, case_name: str, table: RocaTable) -> List[RocaEntry]:
    await open_case(browser, case_name)
    await CaseNavigationBar(browser.page).navigate_to("ROCA")
    return await RocaPage(browser.page).read_roca(table)


# ---- cleanup -------------------------------------------------------------------

async def _remove_open_case(page: Page) -> None:
    remove = page.get_by_role("link", name="Remove Case")
    await remove.wait_for(state="visible", timeout=10_000)
    await accept_dialogs(page, remove.click, timeout=10.0)


async def _case_gone(browser: Browser, case_name: str) -> bool:
    """True once the case search reports no match for ``case_name``."""
    await browser.goto(settings.url(CASE_INDEX_PATH))
    await browser.select("#locationSelect", settings.court_house)
    await browser.fill("#searchText", case_name)
    try:
        await browser.click_link("Apply Filter")
        await browser.page.locator("#caseListDiv > h4").wait_for(state="visible", timeout=40_000)
    except (ToolError, PlaywrightTimeout):
        return False
    return NO_CASES_TEXT.lower() in (await browser.text("#caseListDiv > h4")).lower()


async def delete_case_by_name(case_name: str, timeout: float = 60.0) -> None:
    """Delete a case through the admin UI, confirming via the case search.

    Runs in an isolated admin context. A case that can no longer be found
    counts as deleted, so repeated calls are safe.
    """
    if not case_name:
        return

    async def delete(browser: Browser) -> None:
        async def attempt() -> bool:
            try:
                await search_case(browser, case_name)
            except LookupError:
                return True
            await open_case(browser, case_name)
            await retry_action(
                lambda: _remove_open_case(browser.page),
                description=f"remove case {case_name}",
            )
            return await _case_gone(browser, case_name)

        await poll_until(attempt, timeout=timeout, description=f"deletion of {case_name}")

    await run_as_admin(delete)
    print(f"[CLEANUP] Deleted {case_name}")


async def cleanup_case(case_name: Optional[str], timeout: float = 180.0) -> bool:
    """Best-effort deletion that never fails the test that created the case."""
    if not case_name:
        return True
    return await run_cleanup_safely(
        lambda: delete_case_by_name(case_name, timeout),
        timeout=timeout,
        description=f"delete case {case_name}",
    )
