"""Shared configuration for the CCDCS browser journeys.

Values come from environment variables, falling back to ``.env.defaults`` in
the repository root:

- ``CCDCS_BASE_URL``: application under test. When unset the live journeys
  are skipped and only the offline suites run.
- ``PLAYWRIGHT_BROWSER`` (chromium|firefox|webkit), ``PLAYWRIGHT_HEADLESS``,
  ``PLAYWRIGHT_TIMEOUT_MS``.
- ``TEST_SCOPE`` (nightly|regression, ``TEST_USERS`` is accepted as an alias)
  and ``TEST_USER`` (a role, or ``random``) for nightly runs.
- ``CCDCS_USERS_FILE``, ``CCDCS_SESSIONS_DIR``, ``CCDCS_RESULTS_DIR``,
  ``CCDCS_UPLOADS_DIR``, ``CCDCS_COURT_HOUSE``, ``CCDCS_SESSION_COOKIE``.

Loading never raises: a missing users file only matters once a journey asks
for credentials.
"""
from __future__ import annotations

import os
import random
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urljoin

from ccdcs_e2e.roles import DEFAULT_ROLE, Role, RunScope, parse_role, roles_for_run

REPO_ROOT = Path(__file__).resolve().parents[1]
BROWSER_TYPES = {"chromium", "firefox", "webkit"}


@lru_cache(maxsize=1)
def _load_env_defaults() -> Dict[str, str]:
    env_defaults = REPO_ROOT / ".env.defaults"
    if not env_defaults.exists():
        return {}

    defaults: Dict[str, str] = {}
    for raw in env_defaults.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] in ('"', "'") and value[-1] == value[0]:
            value = value[1:-1]
        defaults[key.strip()] = value
    return defaults


def env(key: str, fallback: Optional[str] = None) -> Optional[str]:
    """Environment variable, then ``.env.defaults``, then ``fallback``."""
    value = os.getenv(key)
    if value:
        return value
    return _load_env_defaults().get(key, fallback)


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes"}


@dataclass
class UiTarget:
    """Host and run options of the CCDCS environment under test."""

    base_url: str
    court_house: str = "Southwark"
    allow_writes: bool = True


class UiTestConfig:
    """Resolved settings for a test run."""

    def __init__(self) -> None:
        self.playwright_headless: bool = _flag(env("PLAYWRIGHT_HEADLESS"), True)
        self.browser_type: str = (env("PLAYWRIGHT_BROWSER", "chromium") or "chromium").lower()
        if self.browser_type not in BROWSER_TYPES:
            print(f"[CONFIG] WARNING: unknown PLAYWRIGHT_BROWSER={self.browser_type!r}, using chromium")
            self.browser_type = "chromium"
        self.timeout_ms: int = int(env("PLAYWRIGHT_TIMEOUT_MS", "30000"))

        self.scope: RunScope = RunScope.parse(env("TEST_SCOPE") or env("TEST_USERS"))
        # TEST_USER=random lets a nightly run pick any eligible role
        test_user = env("TEST_USER", DEFAULT_ROLE.value)
        self.test_user: Optional[Role] = None if test_user.lower() == "random" else parse_role(test_user)

        self.users_file = Path(env("CCDCS_USERS_FILE", str(REPO_ROOT / "ccdcs_users.json")))
        self.sessions_dir = Path(env("CCDCS_SESSIONS_DIR", str(REPO_ROOT / ".sessions")))
        self.results_dir = Path(env("CCDCS_RESULTS_DIR", str(REPO_ROOT / ".test-results")))
        self.uploads_dir = Path(env("CCDCS_UPLOADS_DIR", str(REPO_ROOT / "ui_tests" / "data")))
        self.session_cookie: str = env("CCDCS_SESSION_COOKIE", ".ASPXAUTH")

        base_url = env("CCDCS_BASE_URL", "") or ""
        self.target = UiTarget(
            base_url=base_url,
            court_house=env("CCDCS_COURT_HOUSE", "Southwark"),
            allow_writes=_flag(env("UI_ALLOW_WRITES"), True),
        )

        if base_url:
            print(f"[CONFIG] Target {base_url} (browser={self.browser_type}, scope={self.scope.value})")
        else:
            print("[CONFIG] CCDCS_BASE_URL not set, live journeys will be skipped")

    # ---- target helpers ----------------------------------------------------------
    @property
    def live(self) -> bool:
        """True when a deployment is configured to run journeys against."""
        return bool(self.target.base_url)

    @property
    def base_url(self) -> str:
        return self.target.base_url

    @property
    def court_house(self) -> str:
        return self.target.court_house

    @property
    def allow_writes(self) -> bool:
        return self.target.allow_writes

    # ---- utility helpers --------------------------------------------------------
    def url(self, path: str) -> str:
        """Return an absolute URL for the provided path."""
        if not self.base_url:
            raise RuntimeError("CCDCS_BASE_URL is not set; cannot build URLs for the live site")
        return urljoin(self.base_url.rstrip("/") + "/", path.lstrip("/"))

    def roles_for_run(self) -> List[Role]:
        """Roles this run covers, from TEST_SCOPE and TEST_USER.

        A random pick is seeded (``TEST_RANDOM_SEED``, default today's date) so
        every pytest-xdist worker collects the same role.
        """
        seed = env("TEST_RANDOM_SEED") or date.today().isoformat()
        return roles_for_run(self.scope, self.test_user, random.Random(seed))

    def upload_path(self, file_name: str) -> Path:
        """Absolute path of a fixture file to upload."""
        path = self.uploads_dir / file_name
        if not path.exists():
            raise RuntimeError(f"Upload fixture not found: {path} (set CCDCS_UPLOADS_DIR)")
        return path


# Singleton instance - initialized on first import
settings = UiTestConfig()
