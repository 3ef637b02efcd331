"""Catalog ports: the Result type, domain errors and the storage contract.

The domain services depend only on what is declared here. Concrete storage
(in-memory, file, DuckDB) lives under src/adapters and is handed in at
session start.

Security Impact:
    - The storage port carries opaque bytes only; the domain owns serialization
    - The pass-key hash is stored through the same port but under its own key,
      so it never travels inside an exported Document
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar('T')


# ============================================================================
# Result
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an operation whose failure is expected, not exceptional.

    A short pass key or a bad import file is reported this way so the front
    end can show the message to the operator as-is.

    Attributes:
        success: Whether the operation went through
        value: Payload on success
        error: Operator-facing message on failure
        error_type: Exception class name behind the failure
        error_details: Extra context for logs (never secrets)

    Example:
        ```python
        result = store.import_document(raw_bytes)
        if result.is_failure():
            console.print(result.error)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Wrap a value as a successful outcome."""
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Wrap an error message or exception as a failed outcome.

        A CatalogError's own details are used when none are passed.
        """
        if isinstance(error, Exception):
            message = str(error)
            kind = error_type or type(error).__name__
        else:
            message = error
            kind = error_type or "UnknownError"
        if not error_details and isinstance(error, CatalogError):
            error_details = error.details

        return cls(success=False, error=message, error_type=kind, error_details=error_details or {})

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success


# ============================================================================
# Errors
# ============================================================================

class CatalogError(Exception):
    """Base class for catalog errors.

    Attributes:
        details: Extra context for logs (never contains secrets)
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(CatalogError):
    """Raised when operator input fails validation.

    Covers a pass key that is too short and an import file that cannot be
    parsed or lacks the required Document shape.

    Attributes:
        source: File or field the bad input came from
    """

    def __init__(self, message: str, source: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.source = source


class StorageError(CatalogError):
    """Raised when a storage adapter cannot read or write a key.

    Attributes:
        operation: The storage operation that failed (get, set, delete, connect)
        details: Additional error context (key, path)
    """

    def __init__(self, message: str, operation: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message, details)
        self.operation = operation


class ConfigurationError(CatalogError):
    """Raised when settings or storage configuration are invalid."""
    pass


class CatalogLockedError(CatalogError):
    """Raised when the catalog is accessed before the pass-key gate is open."""
    pass


# ============================================================================
# Storage Port
# ============================================================================

class KeyValueStoragePort(ABC):
    """Abstract contract for the device-local key/value store.

    The domain persists three independent keys through this port: the
    serialized Document, the pass-key hash and the device identifier.
    Values are opaque bytes; encoding is the caller's concern.

    Key Principles:
        - Last write wins: set() overwrites without merging
        - Missing keys are not errors: get() returns None
        - Adapter failures raise StorageError

    Example Usage:
        ```python
        storage = InMemoryStorageAdapter()
        storage.set("eh_doctor.device_id", b"abc123")
        assert storage.get("eh_doctor.device_id") == b"abc123"
        ```
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Read the value stored under key.

        Parameters:
            key: Storage key

        Returns:
            Optional[bytes]: Stored bytes, or None if the key is absent

        Raises:
            StorageError: If the backing store cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value.

        Parameters:
            key: Storage key
            value: Bytes to persist

        Raises:
            StorageError: If the backing store cannot be written
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present. Deleting a missing key is a no-op.

        Raises:
            StorageError: If the backing store cannot be written
        """
        pass

    def contains(self, key: str) -> bool:
        """Check whether a value is stored under key."""
        return self.get(key) is not None

    def close(self) -> None:
        """Release adapter resources. Default implementation does nothing."""
        return None
