"""Document serialization for persistence, export and import.

The same JSON shape is used for the stored Document and for export files.
Persisted copies are compact; export files are pretty-printed for humans.
"""

import json
from datetime import date
from typing import Iterable, Optional

from pydantic import ValidationError as PydanticValidationError

from src.domain.catalog import Document
from src.domain.ports import ValidationError

EXPORT_FILENAME_PREFIX = "EH-doctor-data"

INVALID_JSON_MESSAGE = "Import failed: the file is not valid JSON."
NOT_A_DOCUMENT_MESSAGE = "Import failed: the file does not contain a catalog document."
MISSING_DISEASES_MESSAGE = "Import failed: the file has no 'diseases' list."
INVALID_CONTENT_MESSAGE = "Import failed: the file's contents do not match the catalog format."
DUPLICATE_ID_MESSAGE = "Import failed: the id '{id}' is used by more than one entry."


def serialize_document(doc: Document, pretty: bool = False) -> bytes:
    """Serialize a Document to UTF-8 JSON bytes.

    Parameters:
        doc: Document to serialize
        pretty: Indent with two spaces (used for export files)

    Returns:
        bytes: UTF-8 encoded JSON
    """
    indent = 2 if pretty else None
    return json.dumps(doc.to_json_dict(), indent=indent, ensure_ascii=False).encode("utf-8")


def parse_document(raw: bytes, source: Optional[str] = None) -> Document:
    """Parse JSON bytes into a Document.

    Parameters:
        raw: UTF-8 JSON bytes
        source: Optional source name for error context (file name)

    Returns:
        Document: Validated document

    Raises:
        ValidationError: If the bytes are not JSON, not an object, lack a
            ``diseases`` list, contain unreadable disease entries, or repeat a
            disease id (or a reference id within one disease)
    """
    try:
        data = json.loads(raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        raise ValidationError(INVALID_JSON_MESSAGE, source=source, details={"reason": str(e)}) from e

    if not isinstance(data, dict):
        raise ValidationError(
            NOT_A_DOCUMENT_MESSAGE,
            source=source,
            details={"found": type(data).__name__},
        )

    if not isinstance(data.get("diseases"), list):
        raise ValidationError(MISSING_DISEASES_MESSAGE, source=source)

    try:
        doc = Document.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            INVALID_CONTENT_MESSAGE,
            source=source,
            details={"errors": e.error_count()},
        ) from e

    duplicate = _first_duplicate(d.id for d in doc.diseases)
    for disease in doc.diseases:
        duplicate = duplicate or _first_duplicate(ref.id for ref in disease.references)
    if duplicate is not None:
        raise ValidationError(
            DUPLICATE_ID_MESSAGE.format(id=duplicate),
            source=source,
            details={"duplicate_id": duplicate},
        )

    return doc


def _first_duplicate(ids: Iterable[str]) -> Optional[str]:
    seen = set()
    for item in ids:
        if item in seen:
            return item
        seen.add(item)
    return None


def export_filename(day: Optional[date] = None) -> str:
    """File name for an export made on the given day (defaults to today).

    Example:
        >>> export_filename(date(2024, 3, 9))
        'EH-doctor-data-2024-03-09.json'
    """
    day = day or date.today()
    return f"{EXPORT_FILENAME_PREFIX}-{day.isoformat()}.json"
