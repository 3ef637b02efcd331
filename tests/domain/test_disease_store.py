"""Unit tests for DiseaseStore.

All tests run against InMemoryStorageAdapter, so persistence is checked by
reading the raw bytes back out of the adapter.
"""

import json

import pytest

from src.adapters.storage.memory_adapter import InMemoryStorageAdapter
from src.domain.catalog import Disease, Document, Reference, ReferenceKind, seed_document
from src.domain.ports import StorageError
from src.domain.services.disease_store import DOCUMENT_KEY, DiseaseStore


@pytest.fixture
def storage():
    return InMemoryStorageAdapter()


@pytest.fixture
def store(storage):
    return DiseaseStore(storage)


def stored_document(storage) -> dict:
    return json.loads(storage.get(DOCUMENT_KEY))


def always(answer):
    calls = []

    def confirm(disease):
        calls.append(disease.id)
        return answer

    confirm.calls = calls
    return confirm


class TestLoad:
    """Test loading the persisted Document."""

    def test_missing_data_yields_seed(self, store):
        """Test that an empty store starts from the seed document."""
        assert store.document == seed_document()
        assert [d.name for d in store.diseases] == ["Anaemia (General)"]

    def test_load_does_not_write(self, storage):
        """Test that loading alone never persists anything."""
        DiseaseStore(storage)

        assert storage.get(DOCUMENT_KEY) is None

    @pytest.mark.parametrize("raw", [
        b"not json at all",
        b"{\"version\": 1}",
        b"[1, 2, 3]",
        b"{\"diseases\": \"nope\"}",
        b"\xff\xfe\x00",
    ])
    def test_malformed_data_yields_seed(self, raw):
        """Test that corrupted persisted state is treated as absent."""
        storage = InMemoryStorageAdapter({DOCUMENT_KEY: raw})

        store = DiseaseStore(storage)

        assert store.document == seed_document()

    def test_unreadable_storage_yields_seed(self):
        """Test that a storage read failure does not reach the caller."""
        class BrokenStorage(InMemoryStorageAdapter):
            def get(self, key):
                raise StorageError("disk unavailable", operation="get")

        store = DiseaseStore(BrokenStorage())

        assert store.document == seed_document()

    def test_deeply_nested_stored_data_yields_seed(self):
        """Test that stored data too deep to parse is treated as absent."""
        storage = InMemoryStorageAdapter({DOCUMENT_KEY: b"[" * 100_000 + b"]" * 100_000})

        assert DiseaseStore(storage).document == seed_document()

    def test_persisted_document_is_loaded(self, storage):
        """Test that a previously saved document is read back."""
        first = DiseaseStore(storage)
        added = first.add_disease()

        second = DiseaseStore(storage)

        assert second.document == first.document
        assert second.diseases[0].id == added.id


class TestSave:
    """Test persistence after mutations."""

    def test_save_writes_camel_case_document(self, store, storage):
        """Test that the stored document uses the exported field names."""
        store.save()

        data = stored_document(storage)
        assert data["version"] == 1
        assert set(data["clinic"]) == {"name", "owner"}
        disease = data["diseases"][0]
        assert "labTests" in disease
        assert "diagnosisNotes" in disease
        assert "lab_tests" not in disease

    def test_every_mutation_persists(self, store, storage):
        """Test that each mutating operation writes the document."""
        disease = store.add_disease()
        assert storage.write_count == 1

        store.update_disease(disease.model_copy(update={"name": "Malaria"}))
        assert storage.write_count == 2

        ref = store.add_reference(disease.id, Reference.text_note("n", "text"))
        assert storage.write_count == 3

        store.remove_reference(disease.id, ref.id)
        assert storage.write_count == 4

        store.delete_disease(disease.id, always(True))
        assert storage.write_count == 5


class TestAddDisease:
    """Test creating diseases."""

    def test_add_returns_empty_disease(self, store):
        """Test that a new disease has empty collections and a fresh id."""
        disease = store.add_disease()

        assert disease.name == ""
        assert disease.symptoms == []
        assert disease.lab_tests == []
        assert disease.references == []
        assert disease.id
        assert disease.id != "seed-anaemia-general"

    def test_add_prepends(self, store):
        """Test that the new disease is first in an empty search."""
        disease = store.add_disease()

        results = store.search("")
        assert results[0].id == disease.id
        assert len(results) == 2

    def test_add_opens_disease_for_editing(self, store):
        """Test that the new disease becomes the one being edited."""
        disease = store.add_disease()

        assert store.editing_id == disease.id
        assert store.editing.id == disease.id

    def test_ids_are_unique(self, store):
        """Test that repeated adds never reuse an id."""
        ids = {store.add_disease().id for _ in range(50)}

        assert len(ids) == 50


class TestUpdateDisease:
    """Test replacing diseases."""

    def test_update_replaces_matching_disease(self, store, storage):
        """Test that update swaps the disease with the same id."""
        disease = store.add_disease()
        changed = disease.model_copy(update={"name": "Malaria", "symptoms": ["Fever", "Chills"]})

        assert store.update_disease(changed) is True

        assert store.get_disease(disease.id).name == "Malaria"
        assert stored_document(storage)["diseases"][0]["symptoms"] == ["Fever", "Chills"]

    def test_update_keeps_position(self, store):
        """Test that an updated disease stays where it was."""
        first = store.add_disease()
        store.add_disease()

        store.update_disease(first.model_copy(update={"name": "Renamed"}))

        assert [d.name for d in store.diseases].index("Renamed") == 1

    def test_update_unknown_id_is_noop(self, store, storage):
        """Test that updating a missing id changes and persists nothing."""
        before = store.document.model_copy(deep=True)

        assert store.update_disease(Disease(id="missing", name="Ghost")) is False

        assert store.document == before
        assert storage.write_count == 0

    def test_update_stores_a_copy(self, store):
        """Test that later changes to the caller's object do not leak in."""
        disease = store.add_disease()
        changed = disease.model_copy(update={"name": "Malaria"})
        store.update_disease(changed)

        changed.symptoms.append("Sneaky")

        assert store.get_disease(disease.id).symptoms == []


class TestDeleteDisease:
    """Test removing diseases."""

    def test_delete_without_confirmation_is_noop(self, store, storage):
        """Test that a declined confirmation performs no mutation."""
        confirm = always(False)

        assert store.delete_disease("seed-anaemia-general", confirm) is False

        assert confirm.calls == ["seed-anaemia-general"]
        assert len(store.search("")) == 1
        assert storage.write_count == 0

    def test_delete_with_confirmation_removes(self, store, storage):
        """Test that a confirmed delete removes and persists."""
        assert store.delete_disease("seed-anaemia-general", always(True)) is True

        assert store.search("") == []
        assert stored_document(storage)["diseases"] == []

    def test_delete_clears_editing_marker(self, store):
        """Test that deleting the disease being edited clears the marker."""
        disease = store.add_disease()

        store.delete_disease(disease.id, always(True))

        assert store.editing_id is None
        assert store.editing is None

    def test_delete_other_keeps_editing_marker(self, store):
        """Test that deleting a different disease leaves the marker alone."""
        disease = store.add_disease()

        store.delete_disease("seed-anaemia-general", always(True))

        assert store.editing_id == disease.id

    def test_delete_unknown_id_does_not_prompt(self, store):
        """Test that a missing id returns False without asking."""
        confirm = always(True)

        assert store.delete_disease("missing", confirm) is False
        assert confirm.calls == []

    def test_delete_removes_only_the_confirmed_entry(self, store):
        """Test that delete removes exactly one disease even if ids repeat."""
        store.document.diseases[:] = [Disease(id="d1", name="A"), Disease(id="d1", name="B")]
        confirm = always(True)

        assert store.delete_disease("d1", confirm) is True

        assert confirm.calls == ["d1"]
        assert [d.name for d in store.diseases] == ["B"]


class TestReferences:
    """Test reference add/remove."""

    def test_add_link_reference(self, store, storage):
        """Test attaching a link reference."""
        ref = store.add_reference(
            "seed-anaemia-general",
            Reference.link("WHO", "https://www.who.int/"),
        )

        disease = store.get_disease("seed-anaemia-general")
        assert disease.references[-1].id == ref.id
        assert ref.kind == ReferenceKind.GOOGLE
        assert stored_document(storage)["diseases"][0]["references"][-1]["url"] == "https://www.who.int/"

    def test_add_reference_to_missing_disease(self, store, storage):
        """Test that attaching to an unknown disease does nothing."""
        assert store.add_reference("missing", Reference.text_note("x", "y")) is None
        assert storage.write_count == 0

    def test_duplicate_reference_id_gets_fresh_id(self, store):
        """Test that reference ids stay unique within a disease."""
        ref = store.add_reference(
            "seed-anaemia-general",
            Reference(id="seed-ref-note", kind=ReferenceKind.NOTE, label="dup", note="dup"),
        )

        ids = [r.id for r in store.get_disease("seed-anaemia-general").references]
        assert ref.id != "seed-ref-note"
        assert len(ids) == len(set(ids))

    def test_remove_reference(self, store):
        """Test detaching a reference."""
        assert store.remove_reference("seed-anaemia-general", "seed-ref-note") is True

        disease = store.get_disease("seed-anaemia-general")
        assert [r.id for r in disease.references] == ["seed-ref-search"]

    def test_remove_unknown_reference(self, store, storage):
        """Test that removing a missing reference is a no-op."""
        assert store.remove_reference("seed-anaemia-general", "nope") is False
        assert store.remove_reference("missing", "seed-ref-note") is False
        assert storage.write_count == 0

    def test_remove_reference_removes_one_entry(self, store):
        """Test that remove detaches a single reference even if ids repeat."""
        disease = store.get_disease("seed-anaemia-general")
        disease.references[:] = [
            Reference(id="r1", kind=ReferenceKind.NOTE, label="first", note="a"),
            Reference(id="r1", kind=ReferenceKind.NOTE, label="second", note="b"),
        ]

        assert store.remove_reference("seed-anaemia-general", "r1") is True

        assert [r.label for r in disease.references] == ["second"]


class TestEditing:
    """Test the currently-editing marker."""

    def test_nothing_being_edited_initially(self, store):
        assert store.editing_id is None
        assert store.editing is None

    def test_begin_edit_known_disease(self, store):
        """Test that begin_edit marks and returns the disease."""
        disease = store.begin_edit("seed-anaemia-general")

        assert disease.name == "Anaemia (General)"
        assert store.editing_id == "seed-anaemia-general"
        assert store.editing is disease

    def test_begin_edit_unknown_disease_clears_marker(self, store):
        """Test that opening a missing id leaves nothing open."""
        store.add_disease()

        assert store.begin_edit("missing") is None
        assert store.editing_id is None

    def test_end_edit(self, store):
        """Test that end_edit closes the open disease."""
        store.begin_edit("seed-anaemia-general")

        store.end_edit()

        assert store.editing is None

    def test_editing_does_not_persist(self, store, storage):
        """Test that the marker is session state, not stored data."""
        store.begin_edit("seed-anaemia-general")
        store.end_edit()

        assert storage.write_count == 0


class TestSearch:
    """Test catalog search."""

    def test_seed_search_by_symptom(self, store):
        """Test the seed example: 'pallor' matches a symptom."""
        results = store.search("pallor")

        assert [d.name for d in results] == ["Anaemia (General)"]

    def test_seed_search_no_match(self, store):
        """Test the seed example: an absent term returns nothing."""
        assert store.search("xyz123") == []

    @pytest.mark.parametrize("query", ["", "   "])
    def test_empty_query_returns_all(self, store, query):
        """Test that an empty query returns every disease."""
        store.add_disease()

        assert len(store.search(query)) == 2

    @pytest.mark.parametrize("field,value,query", [
        ("name", "Typhoid Fever", "typhoid"),
        ("diagnosis_notes", "Widal test positive", "WIDAL"),
        ("treatment", "Ciprofloxacin 500mg", "ciproflox"),
        ("symptoms", ["Rose spots"], "rose SP"),
        ("lab_tests", ["Blood culture"], "culture"),
    ])
    def test_match_in_each_field(self, store, field, value, query):
        """Test case-insensitive substring matching in every searched field."""
        store.delete_disease("seed-anaemia-general", always(True))
        disease = store.add_disease()
        store.update_disease(disease.model_copy(update={field: value}))

        results = store.search(query)

        assert [d.id for d in results] == [disease.id]

    def test_references_are_not_searched(self, store):
        """Test that reference labels and notes are outside the search."""
        assert store.search("Recheck haemoglobin") == []

    def test_results_keep_document_order(self, store):
        """Test that matches are returned in catalog order, not ranked."""
        first = store.add_disease()
        store.update_disease(first.model_copy(update={"name": "Fatigue syndrome"}))

        results = store.search("fatigue")

        assert [d.id for d in results] == [first.id, "seed-anaemia-general"]


class TestClinic:
    """Test clinic metadata changes."""

    def test_update_clinic_partial(self, store, storage):
        """Test that only the given clinic fields change."""
        store.update_clinic(owner="Dr. Mensah")

        assert store.document.clinic.name == "EH Doctor Clinic"
        assert store.document.clinic.owner == "Dr. Mensah"
        assert stored_document(storage)["clinic"]["owner"] == "Dr. Mensah"


class TestExportImport:
    """Test whole-document export and import."""

    def test_export_is_pretty_utf8_json(self, store):
        """Test that export is indented UTF-8 JSON of the full document."""
        raw = store.export_document()

        text = raw.decode("utf-8")
        assert text.startswith("{\n  \"version\": 1")
        assert json.loads(text)["diseases"][0]["name"] == "Anaemia (General)"

    def test_round_trip(self, store):
        """Test that importing an export yields a deep-equal document."""
        disease = store.add_disease()
        store.update_disease(disease.model_copy(update={
            "name": "Paludisme – forme grave",
            "symptoms": ["Fièvre", "Convulsions"],
        }))
        store.add_reference(disease.id, Reference.text_note("Note", "Artesunate IV"))
        original = store.document.model_copy(deep=True)

        other = DiseaseStore(InMemoryStorageAdapter())
        result = other.import_document(store.export_document())

        assert result.is_success()
        assert result.value == original
        assert other.document == original

    def test_round_trip_after_update_with_untrimmed_entries(self, store):
        """Test that updated lists are stored in the same form an import produces."""
        disease = store.add_disease()
        store.update_disease(disease.model_copy(update={
            "symptoms": [" Fever ", "", "   "],
            "lab_tests": ["Blood smear ", ""],
        }))
        original = store.document.model_copy(deep=True)

        other = DiseaseStore(InMemoryStorageAdapter())
        result = other.import_document(store.export_document())

        assert store.get_disease(disease.id).symptoms == ["Fever"]
        assert store.get_disease(disease.id).lab_tests == ["Blood smear"]
        assert result.is_success()
        assert result.value == original

    def test_import_duplicate_ids_rejected(self, store, storage):
        """Test that a file repeating a disease id leaves the catalog alone."""
        before = store.document.model_copy(deep=True)

        result = store.import_document(
            b'{"diseases": [{"id": "d1", "name": "A"}, {"id": "d1", "name": "B"}]}'
        )

        assert result.is_failure()
        assert result.error.startswith("Import failed:")
        assert store.document == before
        assert storage.write_count == 0

    def test_import_replaces_and_persists(self, store, storage):
        """Test that import discards the prior document and saves the new one."""
        incoming = Document(diseases=[Disease(id="d1", name="Cholera")])
        raw = json.dumps(incoming.to_json_dict()).encode("utf-8")
        store.add_disease()

        result = store.import_document(raw, source="backup.json")

        assert result.is_success()
        assert [d.id for d in store.diseases] == ["d1"]
        assert store.editing_id is None
        assert stored_document(storage)["diseases"][0]["name"] == "Cholera"

    def test_import_minimal_document(self, store):
        """Test that a bare diseases list is enough; other fields default."""
        result = store.import_document(b'{"diseases": [{"name": "Measles"}]}')

        assert result.is_success()
        assert store.document.version == 1
        assert store.diseases[0].name == "Measles"
        assert store.diseases[0].id

    @pytest.mark.parametrize("raw", [
        b"{broken",
        b"",
        b"[]",
        b"{\"clinic\": {}}",
        b"{\"diseases\": {}}",
        b"{\"diseases\": [{\"references\": [{\"kind\": \"video\"}]}]}",
    ])
    def test_import_malformed_leaves_document_unchanged(self, store, storage, raw):
        """Test that a rejected import keeps the current document."""
        before = store.document.model_copy(deep=True)

        result = store.import_document(raw, source="bad.json")

        assert result.is_failure()
        assert result.error_type == "ValidationError"
        assert result.error.startswith("Import failed:")
        assert result.error_details["source"] == "bad.json"
        assert store.document == before
        assert storage.write_count == 0
