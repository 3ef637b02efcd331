"""Application wiring for the EH Doctor catalog.

This module builds a session: the configured storage adapter, the device
identifier, the pass-key gate and the disease store, all sharing one
KeyValueStoragePort.

Architecture:
    - Follows Hexagonal Architecture principles
    - Storage adapter is selected from configuration
    - Front ends (the typer CLI) only talk to the session object
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from src.adapters.storage import DuckDBStorageAdapter, FileStorageAdapter, InMemoryStorageAdapter
from src.domain.ports import CatalogLockedError, ConfigurationError, KeyValueStoragePort
from src.domain.services import DiseaseStore, PassKeyGate, ensure_device_id
from src.infrastructure.config_manager import StorageBackend, StorageConfig
from src.infrastructure.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_storage_adapter(storage_config: StorageConfig) -> KeyValueStoragePort:
    """Create storage adapter based on configuration.

    Parameters:
        storage_config: Validated storage configuration

    Returns:
        KeyValueStoragePort: Configured storage adapter instance

    Raises:
        ConfigurationError: If the backend is unsupported
    """
    if storage_config.backend == StorageBackend.MEMORY:
        logger.info("Initializing in-memory storage (nothing will be kept)")
        return InMemoryStorageAdapter()
    elif storage_config.backend == StorageBackend.FILE:
        logger.info(f"Initializing file storage in: {storage_config.path}")
        return FileStorageAdapter(storage_config.path)
    elif storage_config.backend == StorageBackend.DUCKDB:
        logger.info(f"Initializing DuckDB storage with path: {storage_config.path}")
        return DuckDBStorageAdapter(storage_config=storage_config)
    else:
        raise ConfigurationError(f"Unsupported storage backend: {storage_config.backend}")


@dataclass
class CatalogSession:
    """Everything one front-end session needs.

    The gate and the store share the same storage adapter but use separate
    keys, so the credential never ends up in an exported Document. The store
    (and with it the Document) is only loaded once the gate is open.
    """

    storage: KeyValueStoragePort
    gate: PassKeyGate
    device_id: str
    settings: Settings = field(repr=False)
    _store: Optional[DiseaseStore] = field(default=None, init=False, repr=False)

    @property
    def store(self) -> DiseaseStore:
        """The disease store for this session.

        Raises:
            CatalogLockedError: If the gate has not been unlocked yet
        """
        if not self.gate.is_unlocked:
            raise CatalogLockedError("The catalog is locked. Unlock it with the device pass key first.")
        if self._store is None:
            self._store = DiseaseStore(self.storage, document_key=self.settings.document_key)
            logger.debug(f"Catalog loaded with {len(self._store.diseases)} diseases")
        return self._store

    def close(self) -> None:
        self.storage.close()


def open_session(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStoragePort] = None,
) -> CatalogSession:
    """Open storage and build the gate and store for one session.

    Parameters:
        settings: Application settings (read from the environment if omitted)
        storage: Pre-built storage adapter (overrides configuration; used by tests)

    Returns:
        CatalogSession: Wired session; the gate starts closed
    """
    settings = settings or get_settings()
    storage = storage or create_storage_adapter(settings.storage_config)

    device_id = ensure_device_id(storage, key=settings.device_id_key)
    gate = PassKeyGate(
        storage,
        min_length=settings.min_passkey_length,
        hash_key=settings.passkey_hash_key,
    )

    logger.debug(f"Session opened, gate state: {gate.state.value}")
    return CatalogSession(
        storage=storage,
        gate=gate,
        device_id=device_id,
        settings=settings,
    )
