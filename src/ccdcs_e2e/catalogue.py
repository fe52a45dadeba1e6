"""Expected-state catalogues.

``CaseCatalogue`` is the per-test-case accumulator: test setup records every
upload, update, delete and move it performs, and the reconciler later
compares the catalogue against what the UI shows. One catalogue belongs to
one test case and is dropped when the case is deleted.

The static catalogues (notes on the long-lived reference case, navigation
links) are hand-authored YAML files shipped with the package and loaded once
per process.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from .errors import CatalogueError
from .models import Document, NavLink, Note, RocaEntry

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
NOTES_FILE = DATA_DIR / "notes.yaml"
NAV_LINKS_FILE = DATA_DIR / "nav_links.yaml"
CASE_TEMPLATE_FILE = DATA_DIR / "case_template.yaml"

CREATE = "Create"
UPDATE = "Update"
DELETE = "Delete"


def split_defendants(defendants: Optional[str]) -> List[str]:
    """``"One Defendant, Two Defendant"`` -> ``["One Defendant", "Two Defendant"]``."""
    if not defendants:
        return []
    return [name.strip() for name in defendants.split(",") if name.strip()]


class CaseCatalogue:
    """Append-only record of what a single test case put on the system.

    Usage:
        catalogue = CaseCatalogue("TestCase 1234")
        catalogue.record_upload("A", "unrestricted.pdf", "Trainer01")
        catalogue.record_action("A", "unrestricted.pdf", "Delete", "Trainer01")
        expected = catalogue.unrestricted_roca
    """

    def __init__(self, case_name: str) -> None:
        self.case_name = case_name
        self._documents: List[Document] = []
        self._notes: List[Note] = []
        self._unrestricted_roca: List[RocaEntry] = []
        self._restricted_roca: List[RocaEntry] = []

    def __repr__(self) -> str:
        return (
            f"CaseCatalogue(case={self.case_name!r}, documents={len(self._documents)}, "
            f"roca={len(self._unrestricted_roca)}+{len(self._restricted_roca)}, notes={len(self._notes)})"
        )

    # ---- read access ----------------------------------------------------------
    @property
    def documents(self) -> Tuple[Document, ...]:
        return tuple(self._documents)

    @property
    def notes(self) -> Tuple[Note, ...]:
        return tuple(self._notes)

    @property
    def unrestricted_roca(self) -> Tuple[RocaEntry, ...]:
        return tuple(self._unrestricted_roca)

    @property
    def restricted_roca(self) -> Tuple[RocaEntry, ...]:
        return tuple(self._restricted_roca)

    def entries_for_defendants(self, *names: str) -> List[RocaEntry]:
        """Restricted entries naming any of ``names`` among their defendants.

        Defence advocates only see restricted activity for the defendants they
        represent, so their expected restricted table is this subset. The ROCA
        defendants cell is a comma-separated list; names are compared whole.
        """
        wanted = {name.strip() for name in names}
        return [
            entry
            for entry in self._restricted_roca
            if wanted.intersection(split_defendants(entry.defendants))
        ]

    # ---- builders -------------------------------------------------------------
    def add_document(self, document: Document) -> Document:
        self._documents.append(document)
        return document

    def add_note(self, note: Note) -> Note:
        self._notes.append(note)
        return note

    def record_upload(
        self,
        section_index: str,
        document_name: str,
        username: str,
        defendants: Optional[str] = None,
    ) -> RocaEntry:
        """Record a ``Create`` entry for a freshly uploaded document.

        The document number is one more than the number of documents already
        created in the same section of the same table. Passing ``defendants``
        records the upload in the restricted table.
        """
        restricted = bool(defendants and defendants.strip())
        table = self._table(restricted)
        number = self._next_number(table, section_index)
        entry = RocaEntry(
            section_index=section_index,
            document_number=str(number),
            document_name=document_name,
            action=CREATE,
            username=username,
            defendants=defendants,
        )
        table.append(entry)
        logger.debug(f"Recorded upload {entry.describe()} in {self.case_name}")
        return entry

    def record_action(
        self,
        section_index: str,
        document_name: str,
        action: str,
        username: str,
        defendants: Optional[str] = None,
    ) -> RocaEntry:
        """Record an ``Update``, ``Delete`` or other action on an uploaded document.

        The entry reuses the number the document got at upload.

        Raises:
            CatalogueError: The document was never uploaded to that section.
        """
        restricted = bool(defendants and defendants.strip())
        table = self._table(restricted)
        created = self._find_created(table, section_index, document_name)
        entry = RocaEntry(
            section_index=section_index,
            document_number=created.document_number,
            document_name=document_name,
            action=action,
            username=username,
            defendants=defendants,
        )
        table.append(entry)
        logger.debug(f"Recorded {action} {entry.describe()} in {self.case_name}")
        return entry

    def record_move(
        self,
        section_index: str,
        new_section_index: str,
        document_name: str,
        username: str,
        *,
        from_restricted: bool = False,
        to_restricted: bool = False,
        defendants: Optional[str] = None,
        source_action: str = DELETE,
    ) -> Tuple[RocaEntry, RocaEntry]:
        """Record a document moving between sections.

        The source table gets a ``source_action`` entry with the document's old
        number; the destination table gets a ``Create`` entry with the next
        number of the destination section. Defendants follow the document into
        a restricted destination and are dropped for an unrestricted one.

        Returns:
            The (source, destination) entries.
        """
        source_defendants = defendants if from_restricted else None
        if (from_restricted or to_restricted) and not defendants:
            raise CatalogueError(
                f"Moving {document_name!r} from section {section_index} to {new_section_index} "
                f"touches a restricted section and needs defendants"
            )
        source_table = self._table(from_restricted)
        created = self._find_created(source_table, section_index, document_name)
        source_entry = RocaEntry(
            section_index=section_index,
            document_number=created.document_number,
            document_name=document_name,
            action=source_action,
            username=username,
            defendants=source_defendants,
        )
        source_table.append(source_entry)

        if to_restricted:
            destination_defendants: Optional[str] = defendants
        else:
            destination_defendants = None
            if defendants and from_restricted:
                logger.warning(
                    f"Defendants {defendants!r} dropped moving {document_name!r} from restricted "
                    f"section {section_index} to unrestricted section {new_section_index}"
                )

        destination_table = self._table(to_restricted)
        destination_entry = RocaEntry(
            section_index=new_section_index,
            document_number=str(self._next_number(destination_table, new_section_index)),
            document_name=document_name,
            action=CREATE,
            username=username,
            defendants=destination_defendants,
        )
        destination_table.append(destination_entry)
        return source_entry, destination_entry

    # ---- internals ------------------------------------------------------------
    def _table(self, restricted: bool) -> List[RocaEntry]:
        return self._restricted_roca if restricted else self._unrestricted_roca

    @staticmethod
    def _next_number(table: Iterable[RocaEntry], section_index: str) -> int:
        created = [e for e in table if e.section_index == section_index and e.action == CREATE]
        return len(created) + 1

    def _find_created(self, table: Iterable[RocaEntry], section_index: str, document_name: str) -> RocaEntry:
        for entry in reversed(list(table)):
            if (
                entry.section_index == section_index
                and entry.document_name == document_name
                and entry.action == CREATE
            ):
                return entry
        raise CatalogueError(
            f"{document_name!r} was never uploaded to section {section_index} of {self.case_name!r}"
        )


# ---- static catalogues --------------------------------------------------------

@dataclass(frozen=True)
class ReferenceCase:
    """The long-lived case the note catalogue describes."""

    name: str
    search: str
    court_house: str


@dataclass(frozen=True)
class NoteCatalogue:
    case: ReferenceCase
    notes: Tuple[Note, ...]


@dataclass(frozen=True)
class NavLinkCatalogue:
    external: Tuple[NavLink, ...] = ()
    logged_out: Tuple[NavLink, ...] = ()
    logged_in: Tuple[NavLink, ...] = ()
    case: Tuple[NavLink, ...] = ()

    def resolve(self, base_url: str) -> "NavLinkCatalogue":
        """Return a copy with internal URLs prefixed by ``base_url``."""
        base = base_url.rstrip("/") + "/"

        def _absolute(links: Tuple[NavLink, ...]) -> Tuple[NavLink, ...]:
            return tuple(
                link if link.external else NavLink(
                    name=link.name,
                    expected_url=base + link.expected_url.lstrip("/"),
                    expected_title=link.expected_title,
                    external=False,
                    popup=link.popup,
                )
                for link in links
            )

        return NavLinkCatalogue(
            external=self.external,
            logged_out=_absolute(self.logged_out),
            logged_in=_absolute(self.logged_in),
            case=_absolute(self.case),
        )


def _read_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise CatalogueError(f"Catalogue file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise CatalogueError(f"Catalogue file {path} is not valid YAML: {exc}") from exc

    if not isinstance(data, dict):
        raise CatalogueError(f"Invalid catalogue {path}: root must be a mapping")
    return data


def _require(entry: Dict[str, Any], key: str, path: Path) -> Any:
    if key not in entry or entry[key] is None:
        raise CatalogueError(f"Invalid catalogue {path}: entry {entry!r} has no {key!r}")
    return entry[key]


def load_note_catalogue(path: Union[str, Path, None] = None) -> NoteCatalogue:
    """Load the reference case and its notes from YAML.

    Args:
        path: Alternative catalogue file. Defaults to the packaged ``notes.yaml``.

    Raises:
        CatalogueError: The file is missing, not YAML, or an entry lacks a field.
    """
    if path is None:
        return _default_note_catalogue()
    return _parse_note_catalogue(Path(path))


@lru_cache(maxsize=1)
def _default_note_catalogue() -> NoteCatalogue:
    return _parse_note_catalogue(NOTES_FILE)


def _parse_note_catalogue(path: Path) -> NoteCatalogue:
    data = _read_yaml(path)
    case_data = data.get("case") or {}
    case = ReferenceCase(
        name=_require(case_data, "name", path),
        search=str(_require(case_data, "search", path)),
        court_house=case_data.get("court_house", ""),
    )

    raw_notes = data.get("notes")
    if not isinstance(raw_notes, list):
        raise CatalogueError(f"Invalid catalogue {path}: 'notes' must be a list")

    notes = []
    for entry in raw_notes:
        if not isinstance(entry, dict):
            raise CatalogueError(f"Invalid catalogue {path}: note entry {entry!r} is not a mapping")
        roles = entry.get("roles")
        if roles is not None and not isinstance(roles, list):
            raise CatalogueError(f"Invalid catalogue {path}: roles of {entry!r} must be a list")
        notes.append(
            Note(
                note_text=_require(entry, "text", path),
                note_user=_require(entry, "user", path),
                note_share=_require(entry, "share", path),
                note_key=entry.get("key"),
                roles=roles,
            )
        )
    logger.debug(f"Loaded {len(notes)} notes for {case.name} from {path}")
    return NoteCatalogue(case=case, notes=tuple(notes))


def load_notes(path: Union[str, Path, None] = None) -> Tuple[Note, ...]:
    """Shortcut for ``load_note_catalogue(path).notes``."""
    return load_note_catalogue(path).notes


def load_nav_links(path: Union[str, Path, None] = None) -> NavLinkCatalogue:
    """Load navigation links grouped by context (external, logged out, logged in, case)."""
    path = Path(path) if path is not None else NAV_LINKS_FILE
    data = _read_yaml(path)

    groups: Dict[str, Tuple[NavLink, ...]] = {}
    for group in ("external", "logged_out", "logged_in", "case"):
        entries = data.get(group) or []
        if not isinstance(entries, list):
            raise CatalogueError(f"Invalid catalogue {path}: {group!r} must be a list")
        groups[group] = tuple(
            NavLink(
                name=_require(entry, "name", path),
                expected_url=str(_require(entry, "url", path)),
                expected_title=entry.get("title"),
                external=group == "external",
                popup=bool(entry.get("popup", False)),
            )
            for entry in entries
        )
    return NavLinkCatalogue(**groups)


@dataclass(frozen=True)
class Defendant:
    first_name: str
    surname: str
    dob_month: str = "January"

    @property
    def full_name(self) -> str:
        """How the People page lists the defendant (``"Defendant One"``)."""
        return f"{self.first_name} {self.surname}"

    @property
    def roca_name(self) -> str:
        """How ROCA lists the defendant (``"One Defendant"``)."""
        return f"{self.surname} {self.first_name}"

    @property
    def upload_label(self) -> str:
        """How the upload dialog labels the defendant checkbox (``"One, Defendant"``)."""
        return f"{self.surname}, {self.first_name}"


@dataclass(frozen=True)
class CaseTemplate:
    """How throwaway test cases are set up."""

    name_prefix: str
    urn_prefix: str
    defendants: Tuple[Defendant, ...]
    participants: Dict[str, Tuple[str, ...]]
    unrestricted_sections: Tuple[str, ...]
    restricted_sections: Tuple[str, ...]

    def defendant(self, full_name: str) -> Defendant:
        for defendant in self.defendants:
            if defendant.full_name == full_name:
                return defendant
        raise CatalogueError(f"Case template has no defendant {full_name!r}")


def load_case_template(path: Union[str, Path, None] = None) -> CaseTemplate:
    """Load the setup of throwaway cases (defendants, participants, sections)."""
    path = Path(path) if path is not None else CASE_TEMPLATE_FILE
    data = _read_yaml(path)

    defendants = tuple(
        Defendant(
            first_name=_require(entry, "first_name", path),
            surname=_require(entry, "surname", path),
            dob_month=entry.get("dob_month", "January"),
        )
        for entry in data.get("defendants") or []
    )
    participants = {
        str(role): tuple(names or ())
        for role, names in (data.get("participants") or {}).items()
    }
    sections = data.get("sections") or {}
    template = CaseTemplate(
        name_prefix=_require(data, "name_prefix", path),
        urn_prefix=_require(data, "urn_prefix", path),
        defendants=defendants,
        participants=participants,
        unrestricted_sections=tuple(str(s) for s in sections.get("unrestricted") or ()),
        restricted_sections=tuple(str(s) for s in sections.get("restricted") or ()),
    )

    for role, names in participants.items():
        for name in names:
            template.defendant(name)
    return template
