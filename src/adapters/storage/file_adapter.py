"""File Storage Adapter.

Implements KeyValueStoragePort with one file per key inside a data directory.
Writes go to a temporary file that then replaces the target, so a crash
mid-write never leaves a half-written Document behind.

Architecture:
    - Implements KeyValueStoragePort (Hexagonal Architecture)
    - Keys are mapped to file names; characters outside [A-Za-z0-9._-] are
      rejected rather than escaped
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from src.domain.ports import KeyValueStoragePort, StorageError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")


class FileStorageAdapter(KeyValueStoragePort):
    """Key/value store backed by files in a directory.

    Parameters:
        directory: Data directory (created on first write if missing)
        suffix: File name suffix appended to each key

    Example Usage:
        ```python
        storage = FileStorageAdapter("~/.eh_doctor")
        storage.set("eh_doctor.device_id", b"abc")
        ```
    """

    def __init__(self, directory: Union[str, Path], suffix: str = ".dat"):
        self.directory = Path(directory).expanduser()
        self.suffix = suffix

        if self.directory.exists() and not self.directory.is_dir():
            raise StorageError(
                f"Storage path is not a directory: {self.directory}",
                operation="__init__",
                details={"path": str(self.directory)}
            )

    def _path_for(self, key: str) -> Path:
        if not key or not _KEY_PATTERN.match(key) or key in (".", ".."):
            raise StorageError(
                f"Invalid storage key: {key!r}",
                operation="resolve",
                details={"key": key}
            )
        return self.directory / f"{key}{self.suffix}"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(
                f"Failed to read key '{key}': {str(e)}",
                operation="get",
                details={"key": key, "path": str(path)}
            ) from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(
                f"Failed to write key '{key}': {str(e)}",
                operation="set",
                details={"key": key, "path": str(path)}
            ) from e
        logger.debug(f"Wrote {len(value)} bytes to {path}")

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to delete key '{key}': {str(e)}",
                operation="delete",
                details={"key": key, "path": str(path)}
            ) from e
