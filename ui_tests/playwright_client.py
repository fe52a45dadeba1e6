"""
Direct Playwright client for the CCDCS journeys.

Launches the configured engine (chromium, firefox or webkit) in-process and
opens a default context, optionally seeded from a role's saved storage
state so the journey starts already logged in.

Usage:
    from ui_tests.playwright_client import PlaywrightClient

    async with PlaywrightClient(storage_state_path=session_file(Role.HMCTS_ADMIN)) as client:
        await client.page.goto(settings.url("Case/CaseIndex"))
"""

import os
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

# Case tables and the Review popup are laid out for a desktop screen
VIEWPORT = {"width": 1600, "height": 1000}


class PlaywrightClient:
    """One browser process with a default context and page."""

    def __init__(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        timeout: Optional[int] = None,
        storage_state_path: Optional[str] = None,
    ):
        """
        Args:
            browser_type: Browser to use (chromium, firefox, webkit); defaults to settings
            headless: Run in headless mode (None = from settings)
            timeout: Default timeout in milliseconds (None = from settings)
            storage_state_path: Saved session to seed the default context with
        """
        from ui_tests.config import settings

        self.browser_type = browser_type or settings.browser_type
        self.headless = settings.playwright_headless if headless is None else headless
        self.timeout = settings.timeout_ms if timeout is None else timeout
        self.storage_state_path = storage_state_path

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        """Launch the browser and open the default context and page."""
        self._playwright = await async_playwright().start()
        engine = getattr(self._playwright, self.browser_type, self._playwright.chromium)
        self._browser = await engine.launch(headless=self.headless)

        storage_state_path = self.storage_state_path
        if storage_state_path and not os.path.exists(storage_state_path):
            print(f"[SESSION] WARNING: stored session missing, starting logged out: {storage_state_path}")
            storage_state_path = None

        self._context = await self.new_context(storage_state=storage_state_path)
        self._page = await self._context.new_page()

    async def new_context(self, storage_state: Optional[str] = None, **kwargs) -> BrowserContext:
        """
        Create a new isolated browser context.

        Args:
            storage_state: Path of a saved session for the context, if any
            **kwargs: Other context options (locale, etc.)
        """
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        kwargs.setdefault("viewport", VIEWPORT)
        if storage_state:
            kwargs["storage_state"] = storage_state
        context = await self._browser.new_context(**kwargs)
        context.set_default_timeout(self.timeout)
        return context

    async def close(self):
        """Close the page, context, browser and driver, in that order."""
        for attr in ("_page", "_context", "_browser"):
            resource = getattr(self, attr)
            if resource:
                await resource.close()
                setattr(self, attr, None)

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected")
        return self._browser

    @property
    def context(self) -> BrowserContext:
        """The default context."""
        if not self._context:
            raise RuntimeError("Client not connected")
        return self._context

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Client not connected or page not created")
        return self._page
