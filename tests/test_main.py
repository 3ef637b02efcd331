"""Tests for session wiring and storage adapter selection."""

import pytest

from src.adapters.storage import DuckDBStorageAdapter, FileStorageAdapter, InMemoryStorageAdapter
from src.domain.ports import CatalogLockedError
from src.infrastructure.config_manager import StorageConfig
from src.infrastructure.settings import Settings
from src.main import create_storage_adapter, open_session


class TestCreateStorageAdapter:
    """Test adapter selection from configuration."""

    def test_memory(self):
        assert isinstance(create_storage_adapter(StorageConfig(backend="memory")), InMemoryStorageAdapter)

    def test_file(self, tmp_path):
        adapter = create_storage_adapter(StorageConfig(backend="file", path=str(tmp_path)))

        assert isinstance(adapter, FileStorageAdapter)
        assert adapter.directory == tmp_path

    def test_duckdb(self):
        adapter = create_storage_adapter(StorageConfig(backend="duckdb", path=":memory:"))

        assert isinstance(adapter, DuckDBStorageAdapter)
        adapter.close()


class TestOpenSession:
    """Test the end-to-end session flow: unlock, load, mutate."""

    def test_store_locked_until_gate_opens(self):
        """Test that the catalog cannot be read before unlocking."""
        session = open_session(Settings(), storage=InMemoryStorageAdapter())

        with pytest.raises(CatalogLockedError):
            session.store

    def test_first_run_flow(self):
        """Test create pass key, then the seed catalog is available."""
        storage = InMemoryStorageAdapter()
        session = open_session(Settings(), storage=storage)

        assert session.gate.create_credential("abcd").is_success()

        assert [d.name for d in session.store.search("pallor")] == ["Anaemia (General)"]
        assert session.store.search("xyz123") == []

    def test_device_id_is_stable(self):
        """Test that the device id is created once per storage."""
        storage = InMemoryStorageAdapter()

        first = open_session(Settings(), storage=storage)
        second = open_session(Settings(), storage=storage)

        assert first.device_id == second.device_id

    def test_credential_not_in_export(self):
        """Test that the pass-key hash never travels inside an export."""
        storage = InMemoryStorageAdapter()
        session = open_session(Settings(), storage=storage)
        session.gate.create_credential("abcd")

        exported = session.store.export_document()

        assert storage.get(session.settings.passkey_hash_key) not in exported
        assert b"passkey" not in exported

    def test_later_session_sees_changes(self):
        """Test that a second session reads what the first persisted."""
        storage = InMemoryStorageAdapter()
        first = open_session(Settings(), storage=storage)
        first.gate.create_credential("abcd")
        added = first.store.add_disease()

        second = open_session(Settings(), storage=storage)
        assert second.gate.attempt_unlock("abcd") is True

        assert second.store.search("")[0].id == added.id
