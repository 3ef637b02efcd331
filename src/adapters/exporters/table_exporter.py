"""Catalog table exporter.

Flattens the catalog Document into one row per disease so it can be reviewed
in a spreadsheet. This export is one-way: the CSV is never imported back, the
JSON Document stays the only restorable backup.
"""

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from src.domain.catalog import Document
from src.domain.ports import Result

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "; "

TABLE_COLUMNS = [
    "id",
    "name",
    "symptoms",
    "lab_tests",
    "diagnosis_notes",
    "treatment",
    "reference_count",
]


def catalog_to_dataframe(doc: Document) -> pd.DataFrame:
    """Build a one-row-per-disease table.

    Parameters:
        doc: Catalog document

    Returns:
        pd.DataFrame: Columns as in TABLE_COLUMNS, list fields joined with "; "
    """
    rows = [
        {
            "id": disease.id,
            "name": disease.name,
            "symptoms": LIST_SEPARATOR.join(disease.symptoms),
            "lab_tests": LIST_SEPARATOR.join(disease.lab_tests),
            "diagnosis_notes": disease.diagnosis_notes,
            "treatment": disease.treatment,
            "reference_count": len(disease.references),
        }
        for disease in doc.diseases
    ]
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def export_catalog_csv(doc: Document, path: Union[str, Path]) -> Result[Path]:
    """Write the catalog table to a UTF-8 CSV file.

    Parameters:
        doc: Catalog document
        path: Output file path (parent directory must exist)

    Returns:
        Result[Path]: Path written, or a failure if the file could not be written
    """
    output = Path(path)
    try:
        catalog_to_dataframe(doc).to_csv(output, index=False, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write catalog table to {output}: {str(e)}")
        return Result.failure_result(e, error_type="StorageError", error_details={"path": str(output)})

    logger.info(f"Wrote catalog table with {len(doc.diseases)} rows to {output}")
    return Result.success_result(output)
