"""Expected-vs-actual reconciliation.

The reconciler is a pure function: it never waits, retries or touches the
browser. Extraction adapters hand it a stable snapshot, and mismatches come
back as data for the caller to report.

Matching is one-to-one. Each expected record consumes at most one equal
actual record, so a duplicate on either side with no counterpart shows up as
its own missing or unexpected line instead of being absorbed by its twin.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Sequence, Tuple, TypeVar

from .models import Document, DocumentCheck, Note, RocaEntry

T = TypeVar("T")

Matcher = Callable[[T, T], bool]
Describer = Callable[[T], str]


@dataclass(frozen=True)
class Reconciliation(Generic[T]):
    """Outcome of comparing one expected set with one actual set."""

    missing_records: Tuple[T, ...] = ()
    unexpected_records: Tuple[T, ...] = ()
    missing: Tuple[str, ...] = ()
    unexpected: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing and not self.unexpected

    @property
    def issues(self) -> List[str]:
        """Missing descriptions followed by unexpected descriptions."""
        return [*self.missing, *self.unexpected]


def identity_match(a, b) -> bool:
    return a.identity() == b.identity()


def _default_missing(record) -> str:
    return f"Missing: {_describe(record)}"


def _default_unexpected(record) -> str:
    return f"Unexpected: {_describe(record)}"


def _describe(record) -> str:
    describe = getattr(record, "describe", None)
    return describe() if callable(describe) else repr(record)


def reconcile(
    expected: Sequence[T],
    actual: Sequence[T],
    equals: Matcher | None = None,
    *,
    describe_missing: Describer | None = None,
    describe_unexpected: Describer | None = None,
) -> Reconciliation[T]:
    """Compare ``expected`` with ``actual`` under ``equals``.

    Args:
        expected: Records the role should see, in catalogue order.
        actual: Records scraped from the UI, in page order.
        equals: Kind-specific matcher. Defaults to comparing ``identity()``.
        describe_missing: Formats an expected record with no counterpart.
        describe_unexpected: Formats an actual record with no counterpart.

    Returns:
        A ``Reconciliation`` that is empty exactly when both inputs are equal
        as multisets under ``equals``. Records keep their input order.
    """
    equals = equals or identity_match
    describe_missing = describe_missing or _default_missing
    describe_unexpected = describe_unexpected or _default_unexpected

    expected = list(expected)
    actual = list(actual)
    consumed = [False] * len(actual)
    missing_records: List[T] = []

    for record in expected:
        for index, candidate in enumerate(actual):
            if not consumed[index] and equals(record, candidate):
                consumed[index] = True
                break
        else:
            missing_records.append(record)

    unexpected_records = [record for index, record in enumerate(actual) if not consumed[index]]

    return Reconciliation(
        missing_records=tuple(missing_records),
        unexpected_records=tuple(unexpected_records),
        missing=tuple(describe_missing(record) for record in missing_records),
        unexpected=tuple(describe_unexpected(record) for record in unexpected_records),
    )


# ---- kind-specific matchers ---------------------------------------------------

def documents_match(a: Document, b: Document) -> bool:
    """Section title, document name and normalized number; ids and roles are ignored."""
    return a.identity() == b.identity()


def roca_entries_match(a: RocaEntry, b: RocaEntry) -> bool:
    """Every field, so a Create and a Delete of one document never match."""
    return a.identity() == b.identity()


def notes_match(a: Note, b: Note) -> bool:
    """Text, author and share label; the UI-assigned key is ignored."""
    return a.identity() == b.identity()


def reconcile_documents(expected: Sequence[Document], actual: Sequence[Document]) -> Reconciliation[Document]:
    return reconcile(
        expected,
        actual,
        documents_match,
        describe_missing=lambda d: f"{d.describe()} - is missing",
        describe_unexpected=lambda d: f"{d.describe()} - is unexpectedly showing",
    )


def reconcile_roca(expected: Sequence[RocaEntry], actual: Sequence[RocaEntry]) -> Reconciliation[RocaEntry]:
    return reconcile(
        expected,
        actual,
        roca_entries_match,
        describe_missing=lambda e: f"Missing: {e.describe()}",
        describe_unexpected=lambda e: f"Unexpected: {e.describe()}",
    )


def reconcile_notes(expected: Sequence[Note], actual: Sequence[Note]) -> Reconciliation[Note]:
    return reconcile(
        expected,
        actual,
        notes_match,
        describe_missing=lambda n: f"{n.describe()} - is missing",
        describe_unexpected=lambda n: f"{n.describe()} - is unexpectedly showing",
    )


def check_document_visibility(visible_names: Iterable[str], checks: Iterable[DocumentCheck]) -> List[str]:
    """Presence and absence checks against the names listed in a section table.

    Returns:
        One line per failed check, empty when every check holds.
    """
    visible = {name.strip() for name in visible_names}
    issues: List[str] = []
    for check in checks:
        shown = check.name.strip() in visible
        if check.should_be_visible and not shown:
            issues.append(f"Expected {check.name} to be visible but it wasn't.")
        elif not check.should_be_visible and shown:
            issues.append(f"Expected {check.name} to NOT be visible but it was.")
    return issues
