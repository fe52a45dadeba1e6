"""Capability interfaces the extraction layer implements.

The engine only depends on these protocols. The Playwright page objects in
``ui_tests.pages`` satisfy them, and the unit tests use in-memory fakes.

Every ``read_*`` method returns a complete, settled snapshot or raises
``ExtractionTimeoutError``; a partial snapshot is never returned.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Protocol, runtime_checkable

from .models import Document, Note, RocaEntry


class RocaTable(str, Enum):
    UNRESTRICTED = "unrestricted"
    RESTRICTED = "restricted"


@runtime_checkable
class RocaSource(Protocol):
    async def read_roca(self, table: RocaTable) -> List[RocaEntry]:
        ...


@runtime_checkable
class NoteSource(Protocol):
    async def read_notes(self) -> List[Note]:
        ...


@runtime_checkable
class DocumentSource(Protocol):
    async def read_documents(self) -> List[Document]:
        ...


@runtime_checkable
class SectionDocumentSource(Protocol):
    async def read_section_documents(self, section_title: str) -> List[Document]:
        ...


@runtime_checkable
class DocumentUploader(Protocol):
    async def upload_document(self, section_id: str, file_name: str) -> None:
        ...
