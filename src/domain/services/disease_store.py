"""Local Data Store for the disease catalog.

Owns the single in-memory Document, applies CRUD mutations and persists the
full Document after every mutation through an injected storage port.

Architecture:
    - Domain service; no global state, storage arrives as a KeyValueStoragePort
    - Persistence is overwrite-on-mutate, last write wins
    - Import replaces the Document wholesale (no merge, no undo)
"""

import logging
from typing import Callable, Optional

from src.domain.catalog import ClinicInfo, Disease, Document, Reference, new_id, seed_document
from src.domain.ports import KeyValueStoragePort, Result, StorageError, ValidationError
from src.domain.services.document_codec import parse_document, serialize_document

logger = logging.getLogger(__name__)

DOCUMENT_KEY = "eh_doctor.data.v1"

ConfirmCallback = Callable[[Disease], bool]


class DiseaseStore:
    """Document owner with persist-after-mutate semantics.

    Parameters:
        storage: Device-local key/value store
        document_key: Storage key holding the serialized Document

    Example Usage:
        ```python
        store = DiseaseStore(InMemoryStorageAdapter())
        disease = store.add_disease()
        disease_copy = disease.model_copy(update={"name": "Malaria"})
        store.update_disease(disease_copy)
        store.search("malaria")
        ```
    """

    def __init__(self, storage: KeyValueStoragePort, document_key: str = DOCUMENT_KEY):
        self._storage = storage
        self.document_key = document_key
        self.editing_id: Optional[str] = None
        self.document: Document = self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> Document:
        """Read the persisted Document.

        Missing or malformed data is treated as absent and yields a fresh seed
        Document; the caller never sees an error for it.

        Returns:
            Document: Persisted document, or the seed document
        """
        try:
            raw = self._storage.get(self.document_key)
        except StorageError as e:
            logger.error(f"Could not read stored catalog, starting from seed document: {e}")
            return seed_document()

        if raw is None:
            logger.info("No stored catalog found, starting from seed document")
            return seed_document()

        try:
            return parse_document(raw, source=self.document_key)
        except ValidationError as e:
            logger.warning(f"Stored catalog is unreadable, starting from seed document: {e}")
            return seed_document()

    def save(self, doc: Optional[Document] = None) -> None:
        """Serialize and persist the full Document (defaults to the current one)."""
        doc = doc if doc is not None else self.document
        self._storage.set(self.document_key, serialize_document(doc))
        logger.debug(f"Persisted catalog with {len(doc.diseases)} diseases")

    # ------------------------------------------------------------------
    # Disease CRUD
    # ------------------------------------------------------------------

    @property
    def diseases(self) -> list[Disease]:
        return self.document.diseases

    def get_disease(self, disease_id: str) -> Optional[Disease]:
        return self.document.find_disease(disease_id)

    @property
    def editing(self) -> Optional[Disease]:
        """Disease currently open for editing, if any."""
        if self.editing_id is None:
            return None
        return self.get_disease(self.editing_id)

    def begin_edit(self, disease_id: str) -> Optional[Disease]:
        disease = self.get_disease(disease_id)
        self.editing_id = disease.id if disease else None
        return disease

    def end_edit(self) -> None:
        self.editing_id = None

    def add_disease(self) -> Disease:
        """Create an empty Disease at the top of the list and open it for editing.

        Returns:
            Disease: The new entry (fresh id, empty collections)
        """
        disease = Disease(id=self._unused_disease_id())
        self.document.diseases.insert(0, disease)
        self.editing_id = disease.id
        self.save()
        logger.info(f"Added disease {disease.id}")
        return disease

    def update_disease(self, next_disease: Disease) -> bool:
        """Replace the Disease whose id matches ``next_disease.id``.

        The incoming disease is re-validated, so list entries are cleaned the
        same way an import would clean them.

        Returns:
            bool: True if a disease was replaced; False (and nothing persisted)
            if no disease has that id
        """
        for index, disease in enumerate(self.document.diseases):
            if disease.id == next_disease.id:
                self.document.diseases[index] = Disease.model_validate(next_disease.model_dump())
                self.save()
                logger.info(f"Updated disease {next_disease.id}")
                return True

        logger.debug(f"Update ignored, no disease with id {next_disease.id}")
        return False

    def delete_disease(self, disease_id: str, confirm: ConfirmCallback) -> bool:
        """Remove a Disease after explicit operator confirmation.

        Parameters:
            disease_id: Id of the disease to remove
            confirm: Blocking yes/no callback, called with the disease

        Returns:
            bool: True if the disease was removed
        """
        disease = self.get_disease(disease_id)
        if disease is None:
            return False

        if not confirm(disease):
            logger.debug(f"Delete of disease {disease_id} declined")
            return False

        self.document.diseases.remove(disease)
        if self.editing_id == disease_id:
            self.editing_id = None
        self.save()
        logger.info(f"Deleted disease {disease_id}")
        return True

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def add_reference(self, disease_id: str, reference: Reference) -> Optional[Reference]:
        """Attach a reference to a disease.

        A reference whose id collides with one already on the disease gets a
        fresh id, keeping ids unique within the parent.

        Returns:
            Optional[Reference]: The attached reference, or None if the disease
            does not exist
        """
        disease = self.get_disease(disease_id)
        if disease is None:
            return None

        existing_ids = {ref.id for ref in disease.references}
        if reference.id in existing_ids:
            reference = reference.model_copy(update={"id": new_id()})
        else:
            reference = reference.model_copy()

        disease.references.append(reference)
        self.save()
        logger.info(f"Added {reference.kind.value} reference to disease {disease_id}")
        return reference

    def remove_reference(self, disease_id: str, reference_id: str) -> bool:
        """Detach a reference from a disease.

        Returns:
            bool: True if the reference was found and removed
        """
        disease = self.get_disease(disease_id)
        reference = disease.find_reference(reference_id) if disease is not None else None
        if reference is None:
            return False

        disease.references.remove(reference)
        self.save()
        logger.info(f"Removed reference {reference_id} from disease {disease_id}")
        return True

    # ------------------------------------------------------------------
    # Clinic metadata
    # ------------------------------------------------------------------

    def update_clinic(self, name: Optional[str] = None, owner: Optional[str] = None) -> ClinicInfo:
        """Change clinic name and/or owner. Fields left as None are kept."""
        clinic = self.document.clinic
        self.document.clinic = ClinicInfo(
            name=clinic.name if name is None else name,
            owner=clinic.owner if owner is None else owner,
        )
        self.save()
        return self.document.clinic

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: str) -> list[Disease]:
        """Case-insensitive substring search over the searchable fields.

        Matches against name, diagnosis notes, treatment, symptoms and lab
        tests. Not ranked or fuzzy; document order is kept.

        Parameters:
            query: Search text; empty or whitespace-only returns every disease

        Returns:
            list[Disease]: Matching diseases
        """
        needle = (query or "").strip().lower()
        if not needle:
            return list(self.document.diseases)
        return [d for d in self.document.diseases if needle in d.search_text()]

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_document(self, doc: Optional[Document] = None) -> bytes:
        """Pretty-printed UTF-8 JSON of the full Document."""
        return serialize_document(doc if doc is not None else self.document, pretty=True)

    def import_document(self, raw: bytes, source: Optional[str] = None) -> Result[Document]:
        """Replace the whole Document with the contents of an export file.

        On failure the current Document is left untouched. On success the prior
        Document is discarded and the new one is persisted immediately.

        Parameters:
            raw: File contents
            source: Optional file name for error context

        Returns:
            Result[Document]: The imported document, or a ValidationError failure
        """
        try:
            imported = parse_document(raw, source=source)
        except ValidationError as e:
            logger.info(f"Import rejected: {e}")
            return Result.failure_result(e, error_details={"source": source, **e.details})

        self.document = imported
        self.editing_id = None
        self.save()
        logger.info(f"Imported catalog with {len(imported.diseases)} diseases")
        return Result.success_result(imported)

    def _unused_disease_id(self) -> str:
        taken = {d.id for d in self.document.diseases}
        disease_id = new_id()
        while disease_id in taken:
            disease_id = new_id()
        return disease_id
