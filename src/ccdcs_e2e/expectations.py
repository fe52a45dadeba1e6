"""Select the part of a catalogue a role is entitled to see."""
from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Tuple, TypeVar

from .catalogue import load_notes
from .models import Note
from .roles import RoleLike


class HasRoles(Protocol):
    roles: Optional[Tuple[str, ...]]


EntityT = TypeVar("EntityT", bound=HasRoles)


def _role_value(role: RoleLike) -> str:
    return str(getattr(role, "value", role))


def filter_for_role(role: RoleLike, catalogue: Iterable[EntityT]) -> List[EntityT]:
    """Return the records whose ``roles`` include ``role``, in catalogue order.

    Records without a ``roles`` annotation are excluded for every role, so an
    unannotated record can never be matched against the live UI. A role with
    no entries simply gets an empty list.
    """
    wanted = _role_value(role)
    return [
        entity
        for entity in catalogue
        if getattr(entity, "roles", None) is not None and wanted in entity.roles
    ]


def expected_notes_for_role(role: RoleLike, notes: Optional[Iterable[Note]] = None) -> List[Note]:
    """Notes ``role`` should see on the reference case (packaged catalogue by default)."""
    return filter_for_role(role, load_notes() if notes is None else notes)
