"""Thin wrapper around direct Playwright for the CCDCS workflows.

Every interaction that can fail raises ``ToolError`` naming the operation and
its arguments, so a failed journey step reads as "select failed (...)" rather
than a bare Playwright traceback.
"""
from __future__ import annotations

import os
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union

import anyio
from playwright.async_api import Dialog, Locator, Page, TimeoutError as PlaywrightTimeout

from ui_tests.playwright_client import PlaywrightClient


@dataclass
class ToolError(Exception):
    """Raised when a browser operation fails."""

    name: str
    payload: Dict[str, Any]
    message: str

    def __str__(self) -> str:  # pragma: no cover - human readable helper
        return f"{self.name} failed ({self.message}) with payload={self.payload}"


class Browser:
    """Convenience wrapper over one Playwright page of a CCDCS session."""

    def __init__(self, page: Page) -> None:
        self._page = page
        self.current_url: str | None = None

    @property
    def page(self) -> Page:
        return self._page

    async def _run(self, name: str, payload: Dict[str, Any], step: Awaitable[Any]) -> Any:
        try:
            result = await step
        except Exception as exc:
            raise ToolError(name=name, payload=payload, message=str(exc)) from exc
        self.current_url = self._page.url
        return result

    async def goto(self, url: str, wait_until: str = "networkidle", timeout: int = 30000) -> Optional[int]:
        """Navigate to ``url`` and return the response status.

        Case pages keep polling in the background, so a ``networkidle`` timeout
        falls back once to ``domcontentloaded``.
        """
        payload = {"url": url, "wait_until": wait_until}
        try:
            response = await self._page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightTimeout as exc:
            if wait_until != "networkidle":
                raise ToolError(name="goto", payload=payload, message=str(exc)) from exc
            response = await self._run(
                "goto", payload, self._page.goto(url, wait_until="domcontentloaded", timeout=timeout)
            )
        self.current_url = self._page.url
        return response.status if response else None

    async def fill(self, selector: str, value: str) -> None:
        await self._run("fill", {"selector": selector}, self._page.fill(selector, value))

    async def click(self, selector: str) -> None:
        await self._run("click", {"selector": selector}, self._page.click(selector))

    def link(self, name: str, exact: bool = False) -> Locator:
        """Locator for a link by its accessible name."""
        return self._page.get_by_role("link", name=name, exact=exact)

    async def click_link(self, name: str, exact: bool = False) -> None:
        await self._run("click_link", {"name": name, "exact": exact}, self.link(name, exact=exact).first.click())

    async def select(self, selector: str, value: Union[str, List[str]]) -> None:
        """Select option(s) by value or label (the court house list uses labels)."""
        values = [value] if isinstance(value, str) else value
        await self._run("select", {"selector": selector, "value": value}, self._page.select_option(selector, values))

    async def text(self, selector: str, timeout: int = 5000) -> str:
        content = await self._run("text", {"selector": selector}, self._page.text_content(selector, timeout=timeout))
        return content or ""

    async def is_visible(self, selector: str, timeout: float = 0) -> bool:
        """True if ``selector`` is (or becomes, within ``timeout`` seconds) visible."""
        locator = self._page.locator(selector).first
        if not timeout:
            return await locator.is_visible()
        try:
            await locator.wait_for(state="visible", timeout=timeout * 1000)
            return True
        except PlaywrightTimeout:
            return False

    async def screenshot(self, name: str) -> Optional[str]:
        """Full-page PNG into ``SCREENSHOT_DIR``; returns None when it is unset."""
        screenshot_dir = os.environ.get("SCREENSHOT_DIR")
        if not screenshot_dir:
            return None
        os.makedirs(screenshot_dir, exist_ok=True)
        path = os.path.join(screenshot_dir, f"{name}.png")
        await self._run("screenshot", {"name": name}, self._page.screenshot(path=path, full_page=True))
        return path


@asynccontextmanager
async def browser_session(storage_state_path: Optional[str] = None) -> AsyncIterator[Browser]:
    """Yield a Browser on a fresh client, optionally starting from a saved session."""
    client = PlaywrightClient(storage_state_path=storage_state_path)
    await client.connect()
    try:
        yield Browser(client.page)
    finally:
        await client.close()


async def accept_dialogs(
    page: Page, action: Callable[[], Awaitable[Any]], expected: int = 2, timeout: float = 60.0
) -> int:
    """Run ``action`` accepting up to ``expected`` confirmation dialogs.

    Returns how many dialogs were accepted before ``timeout`` ran out.
    """
    accepted = []

    async def handler(dialog: Dialog) -> None:
        accepted.append(dialog.message)
        await dialog.accept()

    page.on("dialog", handler)
    try:
        await action()
        deadline = anyio.current_time() + timeout
        while len(accepted) < expected and anyio.current_time() < deadline:
            await anyio.sleep(0.3)
    finally:
        page.remove_listener("dialog", handler)
    return len(accepted)
