"""Playwright page objects for the CCDCS screens the journeys read from."""

from ui_tests.pages.navigation import CaseNavigationBar, NavigationBar, check_nav_link
from ui_tests.pages.notes import NotesPanel
from ui_tests.pages.review_evidence import (
    PopupState,
    ReviewEvidencePage,
    classify_review_popup,
    open_review_popup,
)
from ui_tests.pages.roca import RocaPage, parse_roca_cells
from ui_tests.pages.section_documents import SectionDocumentsPage, SectionRow, SectionsPage, UploadDocumentPage
