"""
Session state management for persistent logins across tests.

One Playwright storage-state file per role lives in the sessions directory
(``CCDCS_SESSIONS_DIR``). A stored session is reused while its auth cookie is
still a browser-session cookie; otherwise the role logs in again and the new
state is saved. The whole directory is removed at global teardown.
"""

import json
import shutil
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from playwright.async_api import BrowserContext

from ccdcs_e2e.roles import Role, RoleLike, parse_role


ANALYTICS_COOKIE = "cb-enabled"


def _sessions_dir(sessions_dir: Optional[Path] = None) -> Path:
    if sessions_dir is not None:
        return Path(sessions_dir)
    from ui_tests.config import settings

    return settings.sessions_dir


def session_file(role: RoleLike, sessions_dir: Optional[Path] = None) -> Path:
    """Path of the storage-state file for ``role``."""
    return _sessions_dir(sessions_dir) / f"{parse_role(role).value}.json"


def is_session_valid(path: Path, cookie_name: Optional[str] = None) -> bool:
    """True if ``path`` holds a storage state with a live auth cookie.

    The application issues its auth cookie as a browser-session cookie
    (``expires == -1``); anything else means the stored login has lapsed.

    Args:
        path: Storage-state JSON written by ``BrowserContext.storage_state``
        cookie_name: Auth cookie name (default from settings)
    """
    if cookie_name is None:
        from ui_tests.config import settings

        cookie_name = settings.session_cookie

    path = Path(path)
    if not path.exists():
        return False

    try:
        with open(path, "r", encoding="utf-8") as f:
            state = json.load(f)
    except (OSError, ValueError) as exc:
        print(f"[SESSION] Unreadable session file {path}: {exc}")
        return False

    for cookie in state.get("cookies") or []:
        if cookie.get("name") == cookie_name:
            return cookie.get("expires") == -1
    return False


def analytics_cookie(base_url: str) -> dict:
    """Consent cookie that keeps the cookie banner from covering the page."""
    return {
        "name": ANALYTICS_COOKIE,
        "value": "accepted",
        "domain": urlparse(base_url).hostname or "",
        "path": "/",
        "expires": -1,
        "secure": True,
        "sameSite": "Lax",
    }


async def add_analytics_cookie(context: BrowserContext, base_url: Optional[str] = None) -> None:
    """Accept analytics cookies up front for ``context``."""
    if base_url is None:
        from ui_tests.config import settings

        base_url = settings.base_url
    await context.add_cookies([analytics_cookie(base_url)])


async def save_session(
    context: BrowserContext,
    role: RoleLike,
    sessions_dir: Optional[Path] = None,
) -> Path:
    """Save the storage state (cookies, localStorage) of a logged-in context.

    Args:
        context: Playwright browser context after successful login
        role: Role the context is logged in as
        sessions_dir: Override for the sessions directory

    Returns:
        Path to saved state file
    """
    path = session_file(role, sessions_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    await context.storage_state(path=str(path))
    print(f"[SESSION] Saved {parse_role(role).value} session to: {path}")
    return path


def clear_sessions(sessions_dir: Optional[Path] = None) -> bool:
    """Delete every stored session. Returns True if a directory was removed."""
    directory = _sessions_dir(sessions_dir)
    if not directory.exists():
        return False
    shutil.rmtree(directory)
    print(f"[SESSION] Cleared sessions: {directory}")
    return True


async def ensure_session(
    context: BrowserContext,
    role: RoleLike,
    force_login: bool = False,
    sessions_dir: Optional[Path] = None,
) -> Path:
    """Return a valid storage-state file for ``role``, logging in if needed.

    This function:
    1. Reuses the stored session when its auth cookie is still valid
    2. Otherwise logs in on a new page of ``context``
    3. Adds the analytics consent cookie
    4. Saves the new storage state for later tests

    Args:
        context: Fresh browser context to log in with
        role: Role to authenticate as
        force_login: Ignore any stored session
        sessions_dir: Override for the sessions directory

    Returns:
        Path of the stored session
    """
    from ui_tests.browser import Browser
    from ui_tests.workflows import login

    role = parse_role(role)
    path = session_file(role, sessions_dir)
    if not force_login and is_session_valid(path):
        print(f"[SESSION] Reusing {role.value} session")
        return path

    page = await context.new_page()
    try:
        await add_analytics_cookie(context)
        await login(Browser(page), role)
        return await save_session(context, role, sessions_dir)
    finally:
        await page.close()
