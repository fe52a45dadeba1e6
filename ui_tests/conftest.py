import logging
import os
import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

ROOT = Path(__file__).resolve().parents[1]
for path in (ROOT, ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from ccdcs_e2e.aggregator import ResultStore, clear_results, merge_results, summarize
from ui_tests.auth_state import clear_sessions
from ui_tests.browser import Browser
from ui_tests.config import settings
from ui_tests.playwright_client import PlaywrightClient

logger = logging.getLogger(__name__)


def _is_controller(config) -> bool:
    """True in the pytest-xdist controller, or in a run without xdist."""
    return not hasattr(config, "workerinput")


# ============================================================================
# Run lifecycle hooks
# ============================================================================

def pytest_sessionstart(session):
    """Drop result files left over from a previous run before any worker starts."""
    if _is_controller(session.config):
        clear_results(settings.results_dir)


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Merge and delete every worker's result file, then print the aggregate summary."""
    if not _is_controller(config):
        return
    results = merge_results(settings.results_dir, remove=True)
    if not results:
        return

    summary = summarize(results)
    terminalreporter.write_line("")
    for line in summary.lines():
        terminalreporter.write_line(line)
    if summary.passed:
        logger.info(f"Aggregate summary: {len(results)} result(s), no issues")
    else:
        logger.error(
            f"Aggregate summary: {summary.issue_count} issue(s) in "
            f"{', '.join(summary.failing_categories)}"
        )


def pytest_unconfigure(config):
    """Remove stored sessions once the whole run is over."""
    if _is_controller(config):
        clear_sessions()


# ============================================================================
# Browser fixtures
# ============================================================================

@pytest_asyncio.fixture()
async def playwright_client():
    """Create a Playwright client instance."""
    async with PlaywrightClient(headless=settings.playwright_headless) as client:
        yield client


@pytest_asyncio.fixture()
async def browser(playwright_client):
    """Create a Browser instance with the Playwright page."""
    return Browser(playwright_client.page)


@pytest_asyncio.fixture()
async def session_manager(playwright_client):
    """Create a parallel session manager for multi-role tests.

    Provides isolated browser contexts, one per role, each starting from
    that role's stored session. All sessions are closed after the test.

    Usage:
        async def test_visibility(session_manager):
            advocate = await session_manager.role_session(Role.DEFENCE_ADVOCATE_A)
            judge = await session_manager.role_session(Role.FULL_TIME_JUDGE)
    """
    from ui_tests.parallel_session_manager import ParallelSessionManager

    async with ParallelSessionManager(playwright_client.browser) as manager:
        yield manager


@pytest.fixture()
def role_browser(session_manager):
    """Factory returning a logged-in ``Browser`` for a role."""
    async def _open(role) -> Browser:
        handle = await session_manager.role_session(role)
        return Browser(handle.page)
    return _open


@pytest.fixture()
def results():
    """This worker's result store."""
    return ResultStore(settings.results_dir, os.getenv("PYTEST_XDIST_WORKER"))


# ============================================================================
# Live target
# ============================================================================

@pytest.fixture(scope="session")
def live_site():
    """Skip unless the configured deployment answers over HTTP."""
    if not settings.live:
        pytest.skip("CCDCS_BASE_URL not set")
    try:
        with httpx.Client(timeout=30.0, follow_redirects=True) as client:
            response = client.get(settings.base_url)
    except httpx.HTTPError as exc:
        pytest.skip(f"{settings.base_url} unreachable: {exc}")
    if response.status_code >= 500:
        pytest.skip(f"{settings.base_url} unhealthy: HTTP {response.status_code}")
    return settings.base_url
