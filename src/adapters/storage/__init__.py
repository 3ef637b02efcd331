"""Storage adapters for the EH Doctor catalog.

This module contains storage adapters that implement the KeyValueStoragePort
interface for persisting the catalog Document, the pass-key hash and the
device identifier.
"""

from src.adapters.storage.duckdb_adapter import DuckDBStorageAdapter
from src.adapters.storage.file_adapter import FileStorageAdapter
from src.adapters.storage.memory_adapter import InMemoryStorageAdapter

__all__ = ["DuckDBStorageAdapter", "FileStorageAdapter", "InMemoryStorageAdapter"]
