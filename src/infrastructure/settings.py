"""Application Settings and Configuration.

This module provides application-wide settings that combine configuration
from the configuration manager with application-specific defaults.

Security Impact:
    - Settings never hold the pass key or its hash
    - Defaults are provided for single-device use
"""

import os
from typing import Optional

from src.domain.links import DEFAULT_SEARCH_SUFFIX
from src.domain.services.device_identity import DEVICE_ID_KEY
from src.domain.services.disease_store import DOCUMENT_KEY
from src.domain.services.passkey_gate import MIN_PASSKEY_LENGTH, PASSKEY_HASH_KEY
from src.infrastructure.config_manager import ConfigManager, StorageConfig, load_env_file

# Application metadata
APP_NAME = "EH Doctor"
APP_VERSION = "1.0.0"


class Settings:
    """Application settings loaded from configuration manager and environment.

    This class provides a unified interface for accessing application settings,
    combining values from the configuration manager with environment variables
    and sensible defaults.
    """

    def __init__(self):
        """Initialize settings from environment."""
        load_env_file()
        self._storage_config: Optional[StorageConfig] = None
        self._config_manager: Optional[ConfigManager] = None

        self.app_name = os.getenv("EH_APP_NAME", APP_NAME)
        self.app_version = APP_VERSION

        # Logging
        self.log_level = os.getenv("EH_LOG_LEVEL", "WARNING")
        self.log_json = os.getenv("EH_LOG_JSON", "false").lower() == "true"

        # Gate
        self.min_passkey_length = MIN_PASSKEY_LENGTH

        # Outbound search links
        self.search_suffix = os.getenv("EH_SEARCH_SUFFIX", DEFAULT_SEARCH_SUFFIX)

        # Where `export` writes when no output path is given
        self.export_dir = os.getenv("EH_EXPORT_DIR", ".")

        # Storage keys
        self.document_key = DOCUMENT_KEY
        self.passkey_hash_key = PASSKEY_HASH_KEY
        self.device_id_key = DEVICE_ID_KEY

    @property
    def storage_config(self) -> StorageConfig:
        """Get storage configuration (loaded lazily on first access)."""
        if self._storage_config is None:
            self._storage_config = self.config_manager.get_storage_config()
        return self._storage_config

    @property
    def config_manager(self) -> ConfigManager:
        """Get configuration manager instance."""
        if self._config_manager is None:
            self._config_manager = ConfigManager.from_environment()
        return self._config_manager


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
