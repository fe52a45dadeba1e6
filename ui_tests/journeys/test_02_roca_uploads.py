"""
Journey 02: ROCA Document Audit

Every document uploaded to a throwaway case shows up in the right ROCA table,
and restricted activity is only shown to the advocates of the defendants it
concerns:

1. HMCTS Admin uploads to up to three unrestricted sections
2. Defence Advocate A (Defendant One) and B (Defendant Two) upload to
   restricted sections; each sees only their own defendant's entries
3. Defence Advocate C (both defendants) uploads a document restricted to
   both and sees every restricted entry

The expected tables are built up in a CaseCatalogue as the uploads happen.
The case is deleted afterwards by the ``new_case`` fixture.
"""
import random
from typing import List

import pytest

from ccdcs_e2e.adapters import RocaTable
from ccdcs_e2e.aggregator import assert_no_issues, raise_for_issues
from ccdcs_e2e.catalogue import CaseCatalogue, CaseTemplate
from ccdcs_e2e.reconciler import reconcile_roca
from ccdcs_e2e.roles import Role
from ui_tests.browser import Browser
from ui_tests.users import credentials_for
from ui_tests.workflows import open_case, read_case_roca, upload_document

pytestmark = pytest.mark.asyncio

CATEGORY = "ROCA"
UNRESTRICTED_FILE = "unrestrictedSectionUpload"
DEFENDANT_ONE_FILE = "restrictedSectionUploadDefendantOne"
DEFENDANT_TWO_FILE = "restrictedSectionUploadDefendantTwo"
BOTH_DEFENDANTS_FILE = "restrictedSectionUploadD1&D2"


def _sample(sections, k: int = 3) -> List[str]:
    return random.sample(list(sections), min(k, len(sections)))


async def _upload_restricted(
    browser: Browser,
    catalogue: CaseCatalogue,
    template: CaseTemplate,
    role: Role,
    sections: List[str],
    file_stem: str,
    defendant_names: List[str],
) -> None:
    """Upload ``file_stem`` to each section restricted to ``defendant_names`` and record it."""
    defendants = [template.defendant(name) for name in defendant_names]
    username = credentials_for(role).roca_name
    await open_case(browser, catalogue.case_name)
    for section in sections:
        await upload_document(browser, section, file_stem, [d.upload_label for d in defendants])
        catalogue.record_upload(
            section,
            file_stem,
            username,
            defendants=", ".join(d.roca_name for d in defendants),
        )


async def test_unrestricted_uploads_recorded(new_case, case_template, role_browser, results):
    """Uploads to unrestricted sections appear as Create entries in the unrestricted table."""
    catalogue = CaseCatalogue(new_case)
    browser = await role_browser(Role.HMCTS_ADMIN)
    username = credentials_for(Role.HMCTS_ADMIN).roca_name

    await open_case(browser, new_case)
    for section in _sample(case_template.unrestricted_sections):
        await upload_document(browser, section, UNRESTRICTED_FILE)
        catalogue.record_upload(section, UNRESTRICTED_FILE, username)

    actual = await read_case_roca(browser, new_case, RocaTable.UNRESTRICTED)
    reconciliation = reconcile_roca(catalogue.unrestricted_roca, actual)

    results.record(
        Role.HMCTS_ADMIN.value,
        reconciliation,
        heading="ROCA Validation: Upload Unrestricted Document",
        category=CATEGORY,
    )
    raise_for_issues(f"Unrestricted uploads by {Role.HMCTS_ADMIN.value}", reconciliation)


async def test_restricted_uploads_segregated(new_case, case_template, role_browser, results):
    """Each defence advocate sees exactly the restricted entries of their defendants."""
    catalogue = CaseCatalogue(new_case)
    sections = _sample(case_template.restricted_sections)
    one, two = (d.full_name for d in case_template.defendants[:2])
    one_roca, two_roca = (case_template.defendant(name).roca_name for name in (one, two))

    advocate_a = await role_browser(Role.DEFENCE_ADVOCATE_A)
    advocate_b = await role_browser(Role.DEFENCE_ADVOCATE_B)
    advocate_c = await role_browser(Role.DEFENCE_ADVOCATE_C)

    await _upload_restricted(advocate_a, catalogue, case_template, Role.DEFENCE_ADVOCATE_A,
                             sections, DEFENDANT_ONE_FILE, [one])
    await _upload_restricted(advocate_b, catalogue, case_template, Role.DEFENCE_ADVOCATE_B,
                             sections, DEFENDANT_TWO_FILE, [two])

    checks = []
    actual_b = await read_case_roca(advocate_b, new_case, RocaTable.RESTRICTED)
    checks.append((Role.DEFENCE_ADVOCATE_B.value,
                   reconcile_roca(catalogue.entries_for_defendants(two_roca), actual_b)))
    actual_a = await read_case_roca(advocate_a, new_case, RocaTable.RESTRICTED)
    checks.append((Role.DEFENCE_ADVOCATE_A.value,
                   reconcile_roca(catalogue.entries_for_defendants(one_roca), actual_a)))

    await _upload_restricted(advocate_c, catalogue, case_template, Role.DEFENCE_ADVOCATE_C,
                             sections, BOTH_DEFENDANTS_FILE, [one, two])
    actual_c = await read_case_roca(advocate_c, new_case, RocaTable.RESTRICTED)
    checks.append((Role.DEFENCE_ADVOCATE_C.value,
                   reconcile_roca(catalogue.entries_for_defendants(one_roca, two_roca), actual_c)))

    summary = assert_no_issues(checks, "ROCA RESTRICTED UPLOAD SUMMARY")
    print(summary.render())
    results.record(
        "Defence Users",
        [f"{label}: {issue}" for label, issues in summary.failures for issue in issues],
        heading="ROCA Validation: Upload and Access to Restricted Documents",
        category=CATEGORY,
    )
    raise_for_issues("Restricted uploads by Defence Users", summary)
