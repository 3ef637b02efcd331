"""Catalog Document Schema Definitions.

This module defines the canonical data models for the disease catalog: the
Document (clinic metadata plus disease list), Disease entries and their
References.

Serialized field names are camelCase (``labTests``, ``diagnosisNotes``) so that
exported files keep the established Document shape. Python attributes are
snake_case and models accept either spelling on input.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Runtime validation via Pydantic V2
    - Identity of a Disease is its ``id``; every other field is freely mutable
"""

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.domain.links import DEFAULT_SEARCH_SUFFIX, build_search_url

DOCUMENT_VERSION = 1


def new_id() -> str:
    """Generate a fresh opaque identifier. Identifiers are never reused."""
    return uuid.uuid4().hex


class ReferenceKind(str, Enum):
    """Kind of reference attached to a disease."""
    GOOGLE = "google"
    NOTE = "note"


class CatalogModel(BaseModel):
    """Shared model configuration: camelCase aliases, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Reference(CatalogModel):
    """A citation attached to a Disease.

    ``url`` is meaningful only for ``kind == "google"`` and ``note`` only for
    ``kind == "note"``. The unused one is kept as an empty placeholder and is
    not enforced absent.

    Parameters:
        id: Identifier, unique within the parent Disease
        kind: Reference kind (google link or free-text note)
        label: Short display label
        url: External link (google kind)
        note: Free text (note kind)
    """

    id: str = Field(default_factory=new_id, description="Reference identifier")
    kind: ReferenceKind = Field(..., description="Reference kind: google or note")
    label: str = Field(default="", description="Display label")
    url: str = Field(default="", description="External URL (google kind)")
    note: str = Field(default="", description="Free-text note (note kind)")

    @classmethod
    def link(cls, label: str, url: str) -> "Reference":
        """Create a link reference."""
        return cls(kind=ReferenceKind.GOOGLE, label=label, url=url)

    @classmethod
    def text_note(cls, label: str, note: str) -> "Reference":
        """Create a free-text note reference."""
        return cls(kind=ReferenceKind.NOTE, label=label, note=note)

    @classmethod
    def google_search(
        cls,
        disease_name: str,
        label: Optional[str] = None,
        suffix: str = DEFAULT_SEARCH_SUFFIX,
    ) -> "Reference":
        """Create a link reference pointing at a web search for the disease."""
        return cls.link(
            label=label or f"Google: {disease_name}",
            url=build_search_url(disease_name, suffix),
        )


class Disease(CatalogModel):
    """One catalog entry.

    Parameters:
        id: Opaque unique identifier (generated once, never reused)
        name: Disease name
        symptoms: Symptom list
        lab_tests: Lab test list (serialized as ``labTests``)
        diagnosis_notes: Free-text diagnosis notes (``diagnosisNotes``)
        treatment: Free-text treatment notes
        references: Attached references
    """

    id: str = Field(default_factory=new_id, description="Disease identifier")
    name: str = Field(default="", description="Disease name")
    symptoms: list[str] = Field(default_factory=list, description="Symptoms")
    lab_tests: list[str] = Field(default_factory=list, description="Lab tests")
    diagnosis_notes: str = Field(default="", description="Diagnosis notes")
    treatment: str = Field(default="", description="Treatment notes")
    references: list[Reference] = Field(default_factory=list, description="References")

    @field_validator("symptoms", "lab_tests")
    @classmethod
    def strip_blank_entries(cls, v: list[str]) -> list[str]:
        """Drop surrounding whitespace and empty entries from string lists."""
        return [item.strip() for item in v if item and item.strip()]

    def search_text(self) -> str:
        """Lower-cased concatenation of every searchable field."""
        parts = [self.name, self.diagnosis_notes, self.treatment, *self.symptoms, *self.lab_tests]
        return " ".join(parts).lower()

    def find_reference(self, reference_id: str) -> Optional[Reference]:
        """Return the reference with the given id, if attached."""
        for reference in self.references:
            if reference.id == reference_id:
                return reference
        return None


class ClinicInfo(CatalogModel):
    """Clinic metadata stored with the Document."""

    name: str = Field(default="", description="Clinic name")
    owner: str = Field(default="", description="Clinic owner / practitioner")


class Document(CatalogModel):
    """Top-level persisted unit, replaced wholesale on import.

    Parameters:
        version: Static schema version
        clinic: Clinic metadata
        diseases: Disease list (always present, possibly empty)
    """

    version: int = Field(default=DOCUMENT_VERSION, description="Document schema version")
    clinic: ClinicInfo = Field(default_factory=ClinicInfo, description="Clinic metadata")
    diseases: list[Disease] = Field(default_factory=list, description="Disease catalog")

    def find_disease(self, disease_id: str) -> Optional[Disease]:
        """Return the disease with the given id, if present."""
        for disease in self.diseases:
            if disease.id == disease_id:
                return disease
        return None

    def to_json_dict(self) -> dict:
        """Dump to a plain dict using the serialized (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


def seed_document() -> Document:
    """Build the first-run Document.

    The seed is deterministic: identical content and identifiers on every call,
    so a corrupted store always falls back to the same state.

    Returns:
        Document: Clinic metadata plus one example Disease
    """
    anaemia = Disease(
        id="seed-anaemia-general",
        name="Anaemia (General)",
        symptoms=[
            "Fatigue",
            "Pallor",
            "Shortness of breath on exertion",
            "Dizziness",
            "Cold hands and feet",
        ],
        lab_tests=[
            "Complete blood count (CBC)",
            "Serum ferritin",
            "Peripheral blood smear",
            "Reticulocyte count",
        ],
        diagnosis_notes=(
            "Confirm low haemoglobin for age and sex. Use MCV to separate "
            "microcytic, normocytic and macrocytic causes before treating."
        ),
        treatment=(
            "Treat the underlying cause. Oral iron for iron deficiency; "
            "B12 or folate replacement where deficient. Refer if severe."
        ),
        references=[
            Reference(
                id="seed-ref-search",
                kind=ReferenceKind.GOOGLE,
                label="Google: Anaemia (General)",
                url=build_search_url("Anaemia (General)"),
            ),
            Reference(
                id="seed-ref-note",
                kind=ReferenceKind.NOTE,
                label="Clinic note",
                note="Recheck haemoglobin 4 weeks after starting iron.",
            ),
        ],
    )
    return Document(
        version=DOCUMENT_VERSION,
        clinic=ClinicInfo(name="EH Doctor Clinic", owner=""),
        diseases=[anaemia],
    )
