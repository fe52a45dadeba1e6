"""Role-based visibility reconciliation for the CCDCS end-to-end suite."""

from .aggregator import ResultStore, TestResult, assert_no_issues, merge_results, raise_for_issues, summarize
from .catalogue import CaseCatalogue, CaseTemplate, load_case_template, load_nav_links, load_note_catalogue, load_notes
from .errors import CatalogueError, E2EError, ExtractionTimeoutError, PollTimeoutError, ReconciliationError
from .expectations import expected_notes_for_role, filter_for_role
from .models import Document, DocumentCheck, Note, RocaEntry, ShareType, normalize_document_number
from .reconciler import (
    Reconciliation,
    check_document_visibility,
    reconcile,
    reconcile_documents,
    reconcile_notes,
    reconcile_roca,
)
from .roles import EXCLUDED_GROUPS, Role, RunScope, roles_for_run

__version__ = "1.0.0"
