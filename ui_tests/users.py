"""Test user credentials per role.

Credentials live in a JSON users file (``CCDCS_USERS_FILE``), never in the
repository::

    {
      "users": {
        "HMCTSAdmin": {"username": "...", "password": "...", "display_name": "Mr Andrew Trainer01"},
        "DefenceAdvocateA": {"username": "...", "password": "...", "defendants": ["Defendant One"]}
      }
    }

Any value can be overridden per role with ``<ROLE>_USERNAME`` and
``<ROLE>_PASSWORD`` environment variables (``HMCTSADMIN_USERNAME``...), which
is how CI injects secrets.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from ccdcs_e2e.roles import Role, parse_role


@dataclass
class UserCredentials:
    """Login details for one role's test account."""

    role: Role
    username: str
    password: str
    display_name: str = ""
    defendants: List[str] = field(default_factory=list)

    @property
    def roca_name(self) -> str:
        """Name as the ROCA table records it (last word of the display name)."""
        name = self.display_name or self.username
        parts = name.split()
        return parts[-1] if parts else name

    def __repr__(self) -> str:
        return f"UserCredentials(role={self.role.value}, username={self.username}, password=***)"

    @classmethod
    def from_dict(cls, role: Role, data: dict) -> "UserCredentials":
        return cls(
            role=role,
            username=data.get("username", ""),
            password=data.get("password", ""),
            display_name=data.get("display_name", ""),
            defendants=list(data.get("defendants") or []),
        )


@dataclass
class UsersState:
    users: Dict[Role, UserCredentials] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "UsersState":
        users = {}
        for key, value in (data.get("users") or {}).items():
            role = parse_role(key)
            users[role] = UserCredentials.from_dict(role, value)
        return cls(users=users)


def _env_prefix(role: Role) -> str:
    return role.value.upper()


def load_users(path: Optional[Path] = None) -> UsersState:
    """Load the users file (if any) and apply environment overrides.

    Reads fresh on each call so a rotated password is picked up.
    """
    if path is None:
        from ui_tests.config import settings

        path = settings.users_file

    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            state = UsersState.from_dict(json.load(f))
    else:
        state = UsersState()

    for role in Role:
        prefix = _env_prefix(role)
        username = os.getenv(f"{prefix}_USERNAME")
        password = os.getenv(f"{prefix}_PASSWORD")
        if not (username or password):
            continue
        creds = state.users.get(role) or UserCredentials(role=role, username="", password="")
        if username:
            creds.username = username
        if password:
            creds.password = password
        display_name = os.getenv(f"{prefix}_DISPLAY_NAME")
        if display_name:
            creds.display_name = display_name
        state.users[role] = creds

    return state


def credentials_for(role: Role, path: Optional[Path] = None) -> UserCredentials:
    """Credentials for ``role``.

    Raises:
        RuntimeError: No complete credentials are configured for the role.
    """
    role = parse_role(role)
    creds = load_users(path).users.get(role)
    if creds is None or not (creds.username and creds.password):
        prefix = _env_prefix(role)
        raise RuntimeError(
            f"No credentials for role {role.value}\n"
            f"Add it to the users file (CCDCS_USERS_FILE) or set {prefix}_USERNAME / {prefix}_PASSWORD"
        )
    return creds
