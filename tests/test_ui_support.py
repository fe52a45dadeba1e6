"""
Unit tests for the browser-suite support modules that run without a browser.

Covers:
1. Stored session files and auth cookie validity
2. Users file loading and environment overrides
3. Run configuration from environment variables
4. Confirmation dialogs accepted around a page action
"""

import json

import pytest

from ccdcs_e2e.roles import Role, RunScope
from ui_tests.auth_state import (
    ANALYTICS_COOKIE,
    analytics_cookie,
    clear_sessions,
    is_session_valid,
    session_file,
)
from ui_tests.browser import accept_dialogs
from ui_tests.config import UiTestConfig
from ui_tests.users import UserCredentials, credentials_for, load_users

COOKIE = ".ASPXAUTH"


def write_state(path, cookies):
    path.write_text(json.dumps({"cookies": cookies, "origins": []}), encoding="utf-8")
    return path


class TestSessionFiles:
    def test_one_file_per_role(self, tmp_path):
        assert session_file(Role.HMCTS_ADMIN, tmp_path) == tmp_path / "HMCTSAdmin.json"
        assert session_file("cpsadmin", tmp_path) == tmp_path / "CPSAdmin.json"

    def test_browser_session_cookie_is_valid(self, tmp_path):
        path = write_state(tmp_path / "s.json", [{"name": COOKIE, "value": "x", "expires": -1}])
        assert is_session_valid(path, cookie_name=COOKIE)

    def test_persistent_cookie_is_not(self, tmp_path):
        path = write_state(tmp_path / "s.json", [{"name": COOKIE, "value": "x", "expires": 1760000000}])
        assert not is_session_valid(path, cookie_name=COOKIE)

    def test_missing_cookie(self, tmp_path):
        path = write_state(tmp_path / "s.json", [{"name": ANALYTICS_COOKIE, "value": "accepted", "expires": -1}])
        assert not is_session_valid(path, cookie_name=COOKIE)

    def test_missing_or_unreadable_file(self, tmp_path):
        assert not is_session_valid(tmp_path / "absent.json", cookie_name=COOKIE)
        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")
        assert not is_session_valid(broken, cookie_name=COOKIE)

    def test_clear_sessions(self, tmp_path):
        sessions = tmp_path / "sessions"
        sessions.mkdir()
        write_state(sessions / "HMCTSAdmin.json", [])
        assert clear_sessions(sessions)
        assert not sessions.exists()
        assert not clear_sessions(sessions)

    def test_analytics_cookie(self):
        cookie = analytics_cookie("https://ccdcs.example:8443/Case/")
        assert cookie["name"] == ANALYTICS_COOKIE
        assert cookie["domain"] == "ccdcs.example"
        assert cookie["path"] == "/"


class TestUsers:
    @pytest.fixture
    def users_file(self, tmp_path, monkeypatch):
        for role in Role:
            prefix = role.value.upper()
            for suffix in ("USERNAME", "PASSWORD", "DISPLAY_NAME"):
                monkeypatch.delenv(f"{prefix}_{suffix}", raising=False)
        path = tmp_path / "users.json"
        path.write_text(json.dumps({
            "users": {
                "HMCTSAdmin": {"username": "trainer01", "password": "secret", "display_name": "Mr Andrew Trainer01"},
                "DefenceAdvocateA": {"username": "trainer21", "password": "secret", "defendants": ["Defendant One"]},
            }
        }), encoding="utf-8")
        return path

    def test_load(self, users_file):
        state = load_users(users_file)
        assert state.users[Role.HMCTS_ADMIN].roca_name == "Trainer01"
        assert state.users[Role.DEFENCE_ADVOCATE_A].defendants == ["Defendant One"]

    def test_env_overrides(self, users_file, monkeypatch):
        monkeypatch.setenv("HMCTSADMIN_PASSWORD", "rotated")
        monkeypatch.setenv("CPSADMIN_USERNAME", "trainer11")
        monkeypatch.setenv("CPSADMIN_PASSWORD", "pw")

        state = load_users(users_file)

        assert state.users[Role.HMCTS_ADMIN].password == "rotated"
        assert state.users[Role.HMCTS_ADMIN].username == "trainer01"
        assert state.users[Role.CPS_ADMIN].username == "trainer11"

    def test_missing_file(self, tmp_path, users_file):
        assert load_users(tmp_path / "absent.json").users == {}

    def test_credentials_for(self, users_file):
        assert credentials_for(Role.HMCTS_ADMIN, users_file).username == "trainer01"

    def test_missing_credentials(self, users_file):
        with pytest.raises(RuntimeError, match="CPSADMIN_USERNAME"):
            credentials_for(Role.CPS_ADMIN, users_file)

    def test_password_not_in_repr(self):
        creds = UserCredentials(role=Role.CPS_ADMIN, username="u", password="hunter2")
        assert "hunter2" not in repr(creds)

    def test_roca_name_falls_back_to_username(self):
        assert UserCredentials(role=Role.CPS_ADMIN, username="trainer11", password="p").roca_name == "trainer11"


class TestConfig:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for key in (
            "CCDCS_BASE_URL",
            "CCDCS_UPLOADS_DIR",
            "TEST_SCOPE",
            "TEST_USERS",
            "TEST_USER",
            "TEST_RANDOM_SEED",
            "PLAYWRIGHT_BROWSER",
            "CCDCS_COURT_HOUSE",
            "UI_ALLOW_WRITES",
        ):
            monkeypatch.delenv(key, raising=False)

    def test_offline_by_default(self):
        config = UiTestConfig()
        assert not config.live
        with pytest.raises(RuntimeError, match="CCDCS_BASE_URL"):
            config.url("Case/CaseIndex")

    def test_url(self, monkeypatch):
        monkeypatch.setenv("CCDCS_BASE_URL", "https://ccdcs.example/app")
        config = UiTestConfig()
        assert config.live
        assert config.url("/Case/CaseIndex") == "https://ccdcs.example/app/Case/CaseIndex"

    def test_target_from_env(self, monkeypatch):
        monkeypatch.setenv("CCDCS_COURT_HOUSE", "Snaresbrook")
        monkeypatch.setenv("UI_ALLOW_WRITES", "no")
        config = UiTestConfig()
        assert config.target.court_house == "Snaresbrook"
        assert config.court_house == "Snaresbrook"
        assert not config.allow_writes

    def test_writes_allowed_by_default(self):
        config = UiTestConfig()
        assert config.target.court_house == "Southwark"
        assert config.allow_writes

    def test_nightly_single_user(self, monkeypatch):
        monkeypatch.setenv("TEST_USER", "CPSProsecutor")
        assert UiTestConfig().roles_for_run() == [Role.CPS_PROSECUTOR]

    def test_regression(self, monkeypatch):
        monkeypatch.setenv("TEST_USERS", "regression")
        config = UiTestConfig()
        assert config.scope is RunScope.REGRESSION
        assert len(config.roles_for_run()) > 1

    def test_random_user_is_seeded(self, monkeypatch):
        monkeypatch.setenv("TEST_USER", "random")
        monkeypatch.setenv("TEST_RANDOM_SEED", "42")
        assert UiTestConfig().roles_for_run() == UiTestConfig().roles_for_run()

    def test_unknown_browser_falls_back(self, monkeypatch):
        monkeypatch.setenv("PLAYWRIGHT_BROWSER", "netscape")
        assert UiTestConfig().browser_type == "chromium"

    def test_upload_path(self):
        config = UiTestConfig()
        assert config.upload_path("unrestrictedSectionUpload.pdf").exists()
        with pytest.raises(RuntimeError, match="Upload fixture not found"):
            config.upload_path("missing.pdf")


class FakeDialog:
    def __init__(self, message):
        self.message = message
        self.accepted = False

    async def accept(self):
        self.accepted = True


class FakePage:
    """Delivers dialogs to whatever handlers are registered at the time."""

    def __init__(self):
        self.handlers = []
        self.dialogs = []

    def on(self, event, handler):
        assert event == "dialog"
        self.handlers.append(handler)

    def remove_listener(self, event, handler):
        self.handlers.remove(handler)

    async def confirm(self, *messages):
        for message in messages:
            dialog = FakeDialog(message)
            self.dialogs.append(dialog)
            for handler in list(self.handlers):
                await handler(dialog)


@pytest.mark.asyncio
class TestAcceptDialogs:
    async def test_accepts_each_confirmation(self):
        page = FakePage()
        accepted = await accept_dialogs(page, lambda: page.confirm("Remove case?", "Really?"), timeout=1.0)
        assert accepted == 2
        assert all(dialog.accepted for dialog in page.dialogs)
        assert page.handlers == []

    async def test_no_dialog_before_timeout(self):
        page = FakePage()

        async def nothing():
            return None

        assert await accept_dialogs(page, nothing, expected=1, timeout=0.1) == 0
        assert page.handlers == []
