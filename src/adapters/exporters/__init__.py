"""Exporters that write the catalog to formats other than the JSON Document."""

from src.adapters.exporters.table_exporter import catalog_to_dataframe, export_catalog_csv

__all__ = ["catalog_to_dataframe", "export_catalog_csv"]
