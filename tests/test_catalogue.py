"""
Unit tests for the catalogues.

Covers:
1. CaseCatalogue: ROCA numbering per section and table, actions and moves
2. Packaged YAML catalogues: notes, navigation links, case template
3. Malformed catalogue files
"""

import pytest

from ccdcs_e2e.catalogue import (
    CaseCatalogue,
    load_case_template,
    load_nav_links,
    load_note_catalogue,
    load_notes,
    split_defendants,
)
from ccdcs_e2e.errors import CatalogueError
from ccdcs_e2e.models import RocaEntry


@pytest.fixture
def catalogue():
    return CaseCatalogue("TestCase1234")


class TestRecordUpload:
    def test_numbers_count_per_section(self, catalogue):
        catalogue.record_upload("B", "upload", "Trainer01")
        catalogue.record_upload("C", "upload", "Trainer01")
        third = catalogue.record_upload("B", "upload", "Trainer01")
        assert third.document_number == "2"
        assert [e.section_index for e in catalogue.unrestricted_roca] == ["B", "C", "B"]

    def test_defendants_select_restricted_table(self, catalogue):
        catalogue.record_upload("Q", "upload", "Trainer21", defendants="One Defendant")
        assert catalogue.unrestricted_roca == ()
        assert catalogue.restricted_roca == (
            RocaEntry("Q", "1", "upload", "Create", "Trainer21", defendants="One Defendant"),
        )

    def test_tables_number_independently(self, catalogue):
        catalogue.record_upload("Q", "upload", "Trainer01")
        restricted = catalogue.record_upload("Q", "upload", "Trainer21", defendants="One Defendant")
        assert restricted.document_number == "1"

    def test_entries_for_defendants(self, catalogue):
        one = catalogue.record_upload("Q", "d1", "Trainer21", defendants="One Defendant")
        two = catalogue.record_upload("Q", "d2", "Trainer22", defendants="Two Defendant")
        both = catalogue.record_upload("Q", "d12", "Trainer23", defendants="One Defendant, Two Defendant")

        assert catalogue.entries_for_defendants("One Defendant") == [one, both]
        assert catalogue.entries_for_defendants("Two Defendant") == [two, both]
        assert catalogue.entries_for_defendants("One Defendant", "Two Defendant") == [one, two, both]

    def test_defendant_names_compared_whole(self, catalogue):
        catalogue.record_upload("Q", "d1", "Trainer21", defendants="Someone Defendant")
        one = catalogue.record_upload("Q", "d2", "Trainer21", defendants="Two Defendant,One Defendant ")

        assert catalogue.entries_for_defendants("One Defendant") == [one]
        assert catalogue.entries_for_defendants("Defendant") == []

    @pytest.mark.parametrize("cell, names", [
        ("One Defendant", ["One Defendant"]),
        ("One Defendant, Two Defendant", ["One Defendant", "Two Defendant"]),
        (" , One Defendant,", ["One Defendant"]),
        (None, []),
    ])
    def test_split_defendants(self, cell, names):
        assert split_defendants(cell) == names


class TestRecordAction:
    def test_reuses_upload_number(self, catalogue):
        catalogue.record_upload("B", "first", "Trainer01")
        catalogue.record_upload("B", "second", "Trainer01")
        deleted = catalogue.record_action("B", "first", "Delete", "Trainer01")
        assert deleted.document_number == "1"
        assert deleted.action == "Delete"

    def test_action_does_not_advance_numbering(self, catalogue):
        catalogue.record_upload("B", "first", "Trainer01")
        catalogue.record_action("B", "first", "Update", "Trainer01")
        assert catalogue.record_upload("B", "second", "Trainer01").document_number == "2"

    def test_unknown_document(self, catalogue):
        with pytest.raises(CatalogueError, match="never uploaded"):
            catalogue.record_action("B", "missing", "Delete", "Trainer01")


class TestRecordMove:
    def test_unrestricted_move(self, catalogue):
        catalogue.record_upload("B", "doc", "Trainer01")
        catalogue.record_upload("C", "other", "Trainer01")

        source, destination = catalogue.record_move("B", "C", "doc", "Trainer01")

        assert source == RocaEntry("B", "1", "doc", "Delete", "Trainer01")
        assert destination == RocaEntry("C", "2", "doc", "Create", "Trainer01")

    def test_into_restricted_keeps_defendants(self, catalogue):
        catalogue.record_upload("B", "doc", "Trainer01")

        source, destination = catalogue.record_move(
            "B", "Q", "doc", "Trainer01", to_restricted=True, defendants="One Defendant"
        )

        assert source.defendants is None
        assert source in catalogue.unrestricted_roca
        assert destination.defendants == "One Defendant"
        assert destination in catalogue.restricted_roca

    def test_out_of_restricted_drops_defendants(self, catalogue, caplog):
        catalogue.record_upload("Q", "doc", "Trainer21", defendants="One Defendant")

        source, destination = catalogue.record_move(
            "Q", "B", "doc", "Trainer21", from_restricted=True, defendants="One Defendant"
        )

        assert source.defendants == "One Defendant"
        assert destination.defendants is None
        assert destination in catalogue.unrestricted_roca
        assert "dropped" in caplog.text

    def test_restricted_move_needs_defendants(self, catalogue):
        catalogue.record_upload("B", "doc", "Trainer01")
        with pytest.raises(CatalogueError, match="needs defendants"):
            catalogue.record_move("B", "Q", "doc", "Trainer01", to_restricted=True)


class TestNoteCatalogue:
    def test_packaged_catalogue(self):
        catalogue = load_note_catalogue()
        assert catalogue.case.search == "01AD111111"
        assert catalogue.case.court_house == "Southwark"
        assert len(catalogue.notes) == 21

    def test_every_note_has_roles(self):
        assert all(note.roles for note in load_notes())

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogueError, match="not found"):
            load_note_catalogue(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "notes.yaml"
        path.write_text("case: [unclosed", encoding="utf-8")
        with pytest.raises(CatalogueError, match="not valid YAML"):
            load_note_catalogue(path)

    def test_note_without_text(self, tmp_path):
        path = tmp_path / "notes.yaml"
        path.write_text(
            "case: {name: Case, search: '01'}\n"
            "notes:\n"
            "  - {user: someone, share: Private Note}\n",
            encoding="utf-8",
        )
        with pytest.raises(CatalogueError, match="'text'"):
            load_note_catalogue(path)


class TestNavLinks:
    def test_groups(self):
        links = load_nav_links()
        assert all(link.external for link in links.external)
        assert "LogOn" in [link.name for link in links.logged_out]
        assert "ROCA" in [link.name for link in links.case]

    def test_review_opens_popup(self):
        review = next(link for link in load_nav_links().case if link.name == "Review")
        assert review.popup

    def test_resolve_prefixes_internal_links_only(self):
        links = load_nav_links().resolve("https://ccdcs.example/")
        log_on = next(link for link in links.logged_out if link.name == "LogOn")
        assert log_on.expected_url == "https://ccdcs.example/Account/logon"
        assert all(link.expected_url.startswith("https://www.gov.uk/") for link in links.external)

    def test_group_must_be_list(self, tmp_path):
        path = tmp_path / "nav.yaml"
        path.write_text("external: {name: Home}\n", encoding="utf-8")
        with pytest.raises(CatalogueError, match="must be a list"):
            load_nav_links(path)


class TestCaseTemplate:
    def test_packaged_template(self):
        template = load_case_template()
        assert template.name_prefix == "TestCase"
        assert [d.full_name for d in template.defendants] == ["Defendant One", "Defendant Two"]
        assert template.participants["DefenceAdvocateC"] == ("Defendant One", "Defendant Two")
        assert template.restricted_sections

    def test_defendant_names(self):
        one = load_case_template().defendant("Defendant One")
        assert one.roca_name == "One Defendant"
        assert one.upload_label == "One, Defendant"

    def test_unknown_defendant(self):
        with pytest.raises(CatalogueError):
            load_case_template().defendant("Defendant Three")

    def test_participant_must_reference_defendant(self, tmp_path):
        path = tmp_path / "template.yaml"
        path.write_text(
            "name_prefix: T\n"
            "urn_prefix: U\n"
            "defendants:\n"
            "  - {first_name: Defendant, surname: One}\n"
            "participants:\n"
            "  DefenceAdvocateA: [Defendant Two]\n",
            encoding="utf-8",
        )
        with pytest.raises(CatalogueError, match="Defendant Two"):
            load_case_template(path)
