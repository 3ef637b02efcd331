"""Configuration Manager for Catalog Storage.

This module loads the storage configuration (which key/value backend to use and
where it lives) from environment variables or a JSON file.

Security Impact:
    - Configuration never carries the pass key or its hash
    - Validates configuration before use (fail-fast)

Architecture:
    - Follows Hexagonal Architecture: Infrastructure layer isolated from domain
    - Type-safe configuration using Pydantic models
    - .env files are honoured via python-dotenv
"""

import json
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domain.ports import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "EH_"
DEFAULT_DATA_DIR = Path.home() / ".eh_doctor"


class StorageBackend(str, Enum):
    """Enumeration of supported key/value storage backends."""
    MEMORY = "memory"
    FILE = "file"
    DUCKDB = "duckdb"


class StorageConfig(BaseModel):
    """Storage configuration model.

    Parameters:
        backend: Storage backend (memory, file, duckdb)
        path: Directory for the file backend, database file (or ':memory:')
              for the duckdb backend; ignored by the memory backend
        table_name: Table used by the duckdb backend
    """

    backend: StorageBackend = Field(default=StorageBackend.FILE, description="Storage backend")
    path: Optional[str] = Field(None, description="Storage directory or database file")
    table_name: str = Field(default="kv_store", description="DuckDB key/value table name")

    @field_validator("backend", mode="before")
    @classmethod
    def validate_backend(cls, v: Any) -> Any:
        """Normalise backend names and reject unknown ones."""
        if isinstance(v, str):
            supported = [b.value for b in StorageBackend]
            if v.lower() not in supported:
                raise ValueError(f"Unsupported storage backend: {v}. Supported: {supported}")
            return v.lower()
        return v

    @field_validator("table_name")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Table name is interpolated into SQL, so keep it to identifiers."""
        if not v.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {v}")
        return v

    @model_validator(mode="after")
    def apply_default_path(self) -> "StorageConfig":
        """Fill in a default path and check its parent directory exists."""
        if self.backend == StorageBackend.MEMORY:
            return self

        if self.path is None:
            if self.backend == StorageBackend.FILE:
                self.path = str(DEFAULT_DATA_DIR)
            else:
                self.path = str(DEFAULT_DATA_DIR / "catalog.duckdb")
            return self

        if self.path == ":memory:":
            if self.backend != StorageBackend.DUCKDB:
                raise ValueError("':memory:' is only valid for the duckdb backend")
            return self

        parent = Path(self.path).expanduser().parent
        if not parent.exists():
            raise ValueError(f"Storage directory does not exist: {parent}")
        return self


class ConfigManager:
    """Configuration manager for storage settings.

    Example Usage:
        ```python
        # Load from environment variables
        config = ConfigManager.from_environment()
        storage_config = config.get_storage_config()

        # Load from file
        config = ConfigManager.from_file("config.json")
        storage_config = config.get_storage_config()
        ```
    """

    def __init__(self, config_data: Dict[str, Any]):
        """Initialize configuration manager.

        Parameters:
            config_data: Configuration dictionary
        """
        self._config_data = config_data
        self._storage_config: Optional[StorageConfig] = None

    @classmethod
    def from_environment(cls) -> "ConfigManager":
        """Load configuration from environment variables.

        Environment Variables:
            - EH_STORAGE_BACKEND: memory, file or duckdb (default: file)
            - EH_STORAGE_PATH: storage directory or database file
            - EH_STORAGE_TABLE: DuckDB table name

        A ``.env`` file in the project root is loaded first when present.

        Returns:
            ConfigManager instance
        """
        load_env_file()

        storage: Dict[str, Any] = {}
        if os.getenv(f"{ENV_PREFIX}STORAGE_BACKEND"):
            storage["backend"] = os.getenv(f"{ENV_PREFIX}STORAGE_BACKEND")
        if os.getenv(f"{ENV_PREFIX}STORAGE_PATH"):
            storage["path"] = os.getenv(f"{ENV_PREFIX}STORAGE_PATH")
        if os.getenv(f"{ENV_PREFIX}STORAGE_TABLE"):
            storage["table_name"] = os.getenv(f"{ENV_PREFIX}STORAGE_TABLE")

        return cls({"storage": storage})

    @classmethod
    def from_file(cls, config_path: str) -> "ConfigManager":
        """Load configuration from a JSON file.

        Parameters:
            config_path: Path to configuration file

        Returns:
            ConfigManager instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If config file is invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file: {str(e)}")

        if not isinstance(config_data, dict):
            raise ConfigurationError("Configuration file must contain a JSON object")

        return cls(config_data)

    def get_storage_config(self) -> StorageConfig:
        """Get validated storage configuration.

        Raises:
            ConfigurationError: If the storage section is invalid
        """
        if self._storage_config is None:
            storage_data = self._config_data.get("storage") or {}
            try:
                self._storage_config = StorageConfig(**storage_data)
            except ValueError as e:
                raise ConfigurationError(f"Invalid storage configuration: {e}") from e

        return self._storage_config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key.

        Parameters:
            key: Configuration key (supports dot notation, e.g., "storage.backend")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config_data

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default


def load_env_file() -> None:
    """Load a project-root .env file into the environment if present."""
    from dotenv import load_dotenv

    env_path = Path(__file__).parent.parent.parent / ".env"
    if env_path.exists():
        load_dotenv(env_path)
        logger.debug(f"Loaded environment variables from {env_path}")


# ============================================================================
# Convenience Functions
# ============================================================================

def get_storage_config() -> StorageConfig:
    """Convenience function to get storage configuration from environment.

    Returns:
        StorageConfig instance (defaults to the file backend under ~/.eh_doctor)
    """
    return ConfigManager.from_environment().get_storage_config()
