"""DuckDB Storage Adapter.

This adapter implements the KeyValueStoragePort contract on top of DuckDB, an
in-process database, keeping every key in a single two-column table.

Architecture:
    - Implements KeyValueStoragePort (Hexagonal Architecture)
    - Isolated from domain core - only depends on ports
    - Connection is established lazily and the table is created on first use
    - Writes are upserts: last write wins
"""

import logging
from typing import Optional

import duckdb

from src.domain.ports import KeyValueStoragePort, StorageError
from src.infrastructure.config_manager import StorageBackend, StorageConfig

logger = logging.getLogger(__name__)


class DuckDBStorageAdapter(KeyValueStoragePort):
    """DuckDB implementation of KeyValueStoragePort.

    Parameters:
        storage_config: StorageConfig from the configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)
        table_name: Name of the key/value table

    Example Usage:
        ```python
        from src.infrastructure.config_manager import get_storage_config

        adapter = DuckDBStorageAdapter(storage_config=get_storage_config())
        adapter.set("eh_doctor.device_id", b"abc")
        adapter.close()
        ```
    """

    def __init__(
        self,
        storage_config: Optional[StorageConfig] = None,
        db_path: Optional[str] = None,
        table_name: str = "kv_store",
    ):
        if storage_config:
            if storage_config.backend != StorageBackend.DUCKDB:
                raise StorageError(
                    f"StorageConfig backend '{storage_config.backend.value}' does not match DuckDB adapter",
                    operation="__init__"
                )
            self.db_path = storage_config.path or ":memory:"
            self.table_name = storage_config.table_name
        else:
            self.db_path = db_path or ":memory:"
            self.table_name = table_name

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection and make sure the table exists."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except Exception as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                ) from e

        if not self._initialized:
            self.initialize_schema()
        return self._connection

    def initialize_schema(self) -> None:
        """Create the key/value table if it does not exist."""
        try:
            self._connection.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    key VARCHAR PRIMARY KEY,
                    value BLOB NOT NULL,
                    updated_at TIMESTAMP DEFAULT current_timestamp
                )
            """)
            self._initialized = True
        except Exception as e:
            raise StorageError(
                f"Failed to initialize key/value table: {str(e)}",
                operation="initialize_schema",
                details={"table": self.table_name}
            ) from e

    def get(self, key: str) -> Optional[bytes]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT value FROM {self.table_name} WHERE key = ?", [key]
            ).fetchone()
        except Exception as e:
            raise StorageError(
                f"Failed to read key '{key}': {str(e)}",
                operation="get",
                details={"key": key}
            ) from e
        return bytes(row[0]) if row is not None else None

    def set(self, key: str, value: bytes) -> None:
        conn = self._get_connection()
        try:
            conn.execute(
                f"INSERT OR REPLACE INTO {self.table_name} (key, value, updated_at) "
                f"VALUES (?, ?, current_timestamp)",
                [key, bytes(value)]
            )
        except Exception as e:
            raise StorageError(
                f"Failed to write key '{key}': {str(e)}",
                operation="set",
                details={"key": key}
            ) from e
        logger.debug(f"Stored {len(value)} bytes under {key}")

    def delete(self, key: str) -> None:
        conn = self._get_connection()
        try:
            conn.execute(f"DELETE FROM {self.table_name} WHERE key = ?", [key])
        except Exception as e:
            raise StorageError(
                f"Failed to delete key '{key}': {str(e)}",
                operation="delete",
                details={"key": key}
            ) from e

    def close(self) -> None:
        """Close the DuckDB connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self._initialized = False
            logger.debug("DuckDB connection closed")
