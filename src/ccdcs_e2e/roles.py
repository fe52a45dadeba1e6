"""User roles and run-scope role selection."""
from __future__ import annotations

import logging
import random
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User categories with a fixed visibility entitlement."""

    HMCTS_ADMIN = "HMCTSAdmin"
    CPS_ADMIN = "CPSAdmin"
    CPS_PROSECUTOR = "CPSProsecutor"
    DEFENCE_ADVOCATE_A = "DefenceAdvocateA"
    DEFENCE_ADVOCATE_B = "DefenceAdvocateB"
    DEFENCE_ADVOCATE_C = "DefenceAdvocateC"
    FULL_TIME_JUDGE = "FullTimeJudge"
    PROBATION_STAFF = "ProbationStaff"
    ACCESS_COORDINATOR = "AccessCoordinator"
    ADMIN = "Admin"

    def __str__(self) -> str:
        return self.value


# Groups with permissions too broad to say anything about role-based visibility
EXCLUDED_GROUPS: FrozenSet[Role] = frozenset({Role.ACCESS_COORDINATOR, Role.ADMIN})

DEFAULT_ROLE = Role.HMCTS_ADMIN

RoleLike = Union[Role, str]


class RunScope(str, Enum):
    """How many roles a run covers."""

    NIGHTLY = "nightly"
    REGRESSION = "regression"

    @classmethod
    def parse(cls, value: Optional[str]) -> "RunScope":
        if not value:
            return cls.NIGHTLY
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(scope.value for scope in cls)
            raise ValueError(f"Unknown test scope {value!r}; expected one of: {valid}") from None


def parse_role(value: RoleLike) -> Role:
    """Return the ``Role`` for an enum member or its value, ignoring case."""
    if isinstance(value, Role):
        return value
    wanted = str(value).strip().lower()
    for role in Role:
        if role.value.lower() == wanted:
            return role
    valid = ", ".join(role.value for role in Role)
    raise ValueError(f"Unknown role {value!r}; expected one of: {valid}")


def eligible_roles(excluded: Iterable[Role] = EXCLUDED_GROUPS) -> List[Role]:
    """All roles in declaration order, minus the excluded groups."""
    skip = set(excluded)
    return [role for role in Role if role not in skip]


def roles_for_run(
    scope: Union[RunScope, str, None],
    current: Optional[RoleLike] = None,
    rng: Optional[random.Random] = None,
) -> List[Role]:
    """Resolve the roles a test run should cover.

    Args:
        scope: ``regression`` covers every eligible role, ``nightly`` a single one.
        current: Role to use for a nightly run. Ignored for regression runs.
        rng: Random source used when a nightly run has no eligible ``current``
            role. Pass a seeded ``random.Random`` for a reproducible pick.

    Returns:
        List of roles in declaration order.
    """
    if not isinstance(scope, RunScope):
        scope = RunScope.parse(scope)
    roles = eligible_roles()

    if scope is RunScope.REGRESSION:
        return roles

    if current is not None:
        role = parse_role(current)
        if role in roles:
            return [role]
        logger.warning(f"Role {role.value} is excluded from visibility runs, picking another")

    chosen = (rng or random.Random()).choice(roles)
    logger.info(f"Nightly run will use role {chosen.value}")
    return [chosen]
