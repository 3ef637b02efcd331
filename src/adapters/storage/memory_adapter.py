"""In-memory Storage Adapter.

Dict-backed implementation of KeyValueStoragePort. Used as the storage test
double and for throwaway sessions; nothing survives the process.
"""

import logging
from typing import Dict, Optional

from src.domain.ports import KeyValueStoragePort

logger = logging.getLogger(__name__)


class InMemoryStorageAdapter(KeyValueStoragePort):
    """Key/value store held in a plain dict.

    Parameters:
        initial: Optional starting contents (copied)
    """

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})
        self.write_count = 0

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)
        self.write_count += 1

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
