"""Entity records compared by the reconciliation engine.

Three kinds of records are compared between the expected catalogue and the
live UI:

- ``Document``: a file shown in a case section (Review Evidence, section
  document tables).
- ``RocaEntry``: one row of the Record of Case Activity audit log.
- ``Note``: a sticky note on a document in Review Evidence.

Records are immutable. Constructors normalize the fields that the UI renders
inconsistently (padded document numbers, whitespace around note text), so raw
values are never compared directly.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

_LEADING_ZEROS = re.compile(r"^0+(?!$)")
_ASCII_DIGITS = re.compile(r"[0-9]+")


def normalize_document_number(raw: Any) -> str:
    """Strip surrounding whitespace and leading zeros from a document number.

    ``"007"`` becomes ``"7"``, ``"0"`` and ``"000"`` become ``"0"``. Values
    that are not plain ASCII digits (placeholders such as ``"No available
    document: number"``) are returned trimmed and otherwise unchanged.
    Normalizing an already normalized value returns it unchanged.
    """
    if raw is None:
        return ""
    value = str(raw).strip()
    if _ASCII_DIGITS.fullmatch(value):
        return _LEADING_ZEROS.sub("", value)
    return value


def _normalize_roles(roles: Optional[Iterable[Any]]) -> Optional[Tuple[str, ...]]:
    if roles is None:
        return None
    if isinstance(roles, str):
        return (roles,)
    return tuple(str(getattr(role, "value", role)) for role in roles)


def _normalize_defendants(defendants: Optional[str]) -> Optional[str]:
    if defendants is None:
        return None
    value = defendants.strip()
    return value or None


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return default


class ShareType(str, Enum):
    """Base share type of a note, without its scope qualifier."""

    PRIVATE = "Private Note"
    TIGHTLY_SHARED = "Tightly Shared Note"
    WIDELY_SHARED = "Widely Shared Note"

    @classmethod
    def of(cls, note_share: str) -> "ShareType":
        """Parse ``"Tightly Shared Note (Defence BATES, Bill , 18/2/73)"`` style labels."""
        label = note_share.strip()
        for share in cls:
            if label == share.value or label.startswith(share.value + " "):
                return share
        raise ValueError(f"Unknown note share type: {note_share!r}")


@dataclass(frozen=True)
class Document:
    """A document visible in a case section."""

    section_title: str
    document_name: str
    document_number: str
    section_id: Optional[str] = None
    roles: Optional[Tuple[str, ...]] = None
    document_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "section_title", self.section_title.strip())
        object.__setattr__(self, "document_name", self.document_name.strip())
        object.__setattr__(self, "document_number", normalize_document_number(self.document_number))
        object.__setattr__(self, "roles", _normalize_roles(self.roles))

    def identity(self) -> Tuple[str, str, str]:
        return (self.section_title, self.document_name, self.document_number)

    def describe(self) -> str:
        return f"Section Title: {self.section_title}, Document Name: {self.document_name}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Document":
        return cls(
            section_title=_pick(data, "section_title", "sectionTitle", default=""),
            document_name=_pick(data, "document_name", "documentName", default=""),
            document_number=_pick(data, "document_number", "documentNumber", default=""),
            section_id=_pick(data, "section_id", "sectionId"),
            roles=_pick(data, "roles"),
            document_id=_pick(data, "document_id", "documentId"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["roles"] = list(self.roles) if self.roles is not None else None
        return data


@dataclass(frozen=True)
class RocaEntry:
    """One audit event in the Record of Case Activity.

    Entries are discrete events, so two entries only match when every field
    is equal. A ``Create`` and a later ``Delete`` of the same document are two
    different entries.
    """

    section_index: str
    document_number: str
    document_name: str
    action: str
    username: str
    defendants: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "section_index", str(self.section_index).strip())
        object.__setattr__(self, "document_number", normalize_document_number(self.document_number))
        object.__setattr__(self, "document_name", self.document_name.strip())
        object.__setattr__(self, "action", self.action.strip())
        object.__setattr__(self, "username", self.username.strip())
        object.__setattr__(self, "defendants", _normalize_defendants(self.defendants))

    @property
    def restricted(self) -> bool:
        return self.defendants is not None

    def identity(self) -> Tuple[str, str, str, str, str, Optional[str]]:
        return (
            self.section_index,
            self.document_number,
            self.document_name,
            self.action,
            self.username,
            self.defendants,
        )

    def describe(self) -> str:
        text = (
            f"{self.section_index} / {self.document_name} ({self.document_number}) "
            f"[{self.action} by {self.username}]"
        )
        if self.defendants:
            text += f" for {self.defendants}"
        return text

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RocaEntry":
        return cls(
            section_index=_pick(data, "section_index", "sectionIndex", default=""),
            document_number=_pick(data, "document_number", "documentNumber", default=""),
            document_name=_pick(data, "document_name", "documentName", default=""),
            action=_pick(data, "action", default=""),
            username=_pick(data, "username", default=""),
            defendants=_pick(data, "defendants"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Note:
    """A sticky note attached to a document in Review Evidence.

    ``note_key`` is assigned by the UI and never compared. ``roles`` is only
    populated for catalogue entries; notes scraped from the page carry none.
    """

    note_text: str
    note_user: str
    note_share: str
    note_key: Optional[str] = None
    roles: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "note_text", self.note_text.strip())
        object.__setattr__(self, "note_user", self.note_user.strip())
        object.__setattr__(self, "note_share", self.note_share.strip())
        object.__setattr__(self, "note_key", self.note_key or None)
        object.__setattr__(self, "roles", _normalize_roles(self.roles))

    @property
    def share_type(self) -> ShareType:
        return ShareType.of(self.note_share)

    def identity(self) -> Tuple[str, str, str]:
        return (self.note_text, self.note_user, self.note_share)

    def describe(self) -> str:
        return f'Note: "{self.note_text}"'

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Note":
        return cls(
            note_text=_pick(data, "note_text", "noteText", default=""),
            note_user=_pick(data, "note_user", "noteUser", default=""),
            note_share=_pick(data, "note_share", "noteShare", default=""),
            note_key=_pick(data, "note_key", "noteKey"),
            roles=_pick(data, "roles"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["roles"] = list(self.roles) if self.roles is not None else None
        return data


@dataclass(frozen=True)
class DocumentCheck:
    """A presence or absence check on a document name in a section table."""

    name: str
    should_be_visible: bool = True


@dataclass(frozen=True)
class NavLink:
    """A navigation link and where clicking it should land."""

    name: str
    expected_url: str
    expected_title: Optional[str] = None
    external: bool = False
    # opens in a new window on the same site
    popup: bool = False
