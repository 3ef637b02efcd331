"""Domain layer for the EH Doctor catalog.

This module contains the core catalog logic and document schemas.
All domain models are pure Python with no external dependencies beyond Pydantic.
"""

from .catalog import (
    ClinicInfo,
    Disease,
    Document,
    Reference,
    ReferenceKind,
    seed_document,
)

__all__ = [
    "ClinicInfo",
    "Disease",
    "Document",
    "Reference",
    "ReferenceKind",
    "seed_document",
]
