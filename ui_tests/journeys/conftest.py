"""
Fixtures for journey-based testing.

These fixtures are shared by every journey:
- Skipping when no reachable CCDCS deployment is configured
- Screenshot capture helpers
- Throwaway cases created from the case template and deleted afterwards
"""
import os
from pathlib import Path
from typing import Optional

import pytest
import pytest_asyncio

from ccdcs_e2e.catalogue import CaseTemplate, load_case_template
from ccdcs_e2e.roles import Role
from ui_tests.browser import Browser, browser_session
from ui_tests.config import settings


# ============================================================================
# Live target
# ============================================================================

@pytest.fixture(autouse=True)
def require_live_site(live_site):
    """Every journey needs the deployment configured in CCDCS_BASE_URL."""
    return live_site


@pytest.fixture()
def require_writes():
    """Skip journeys that create cases when the target is read-only."""
    if not settings.allow_writes:
        pytest.skip("UI_ALLOW_WRITES is off for this target")


# ============================================================================
# Screenshot Capture Helper
# ============================================================================

class ScreenshotHelper:
    """Numbered screenshots for one journey, written only when SCREENSHOT_DIR is set."""

    def __init__(self, browser: Browser, journey_prefix: str):
        self.browser = browser
        self.journey_prefix = journey_prefix
        self._step = 0

    async def capture(self, name: str, description: str = "") -> Optional[Path]:
        self._step += 1
        filename = f"{self.journey_prefix}-{self._step:02d}-{name}"
        path = await self.browser.screenshot(filename)
        if path is None:
            return None

        if description:
            print(f"📸 {filename}.png: {description}")
        else:
            print(f"📸 {filename}.png")
        return Path(path)


@pytest.fixture
def screenshot_helper():
    """Factory fixture creating a screenshot helper for a browser and journey."""
    def _create_helper(browser: Browser, journey_prefix: str) -> ScreenshotHelper:
        return ScreenshotHelper(browser, journey_prefix)
    return _create_helper


# ============================================================================
# Throwaway cases
# ============================================================================

@pytest.fixture(scope="session")
def case_template() -> CaseTemplate:
    return load_case_template(os.getenv("CCDCS_CASE_TEMPLATE") or None)


@pytest_asyncio.fixture()
async def new_case(require_writes, case_template):
    """Create a case as HMCTS Admin and delete it after the test.

    Cleanup runs in an isolated Admin browser and never fails the test.
    """
    from ui_tests.auth_state import ensure_session
    from ui_tests.playwright_client import PlaywrightClient
    from ui_tests.workflows import cleanup_case, create_case

    case_name = None
    try:
        async with PlaywrightClient() as client:
            storage_state = await ensure_session(client.context, Role.HMCTS_ADMIN)
        async with browser_session(str(storage_state)) as browser:
            case_name = await create_case(browser, case_template)
        yield case_name
    finally:
        await cleanup_case(case_name)
