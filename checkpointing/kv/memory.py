"""
In-memory ordered key-value store.

Keys are kept in a sorted list alongside a dict so range scans are bisect
lookups rather than full sorts.
"""

import bisect
from typing import Dict, Iterator, List, Optional

from .store import KVPair, KVStore


class MemoryKVStore(KVStore):
    """
    Process-local ordered store, used for tests and ephemeral runs.

    Not persistent: contents are lost when the process exits.
    """

    def __init__(self) -> None:
        super().__init__()
        self._data: Dict[bytes, bytes] = {}
        self._keys: List[bytes] = []

    def get(self, key: bytes) -> Optional[bytes]:
        return self._data.get(bytes(key))

    def set(self, key: bytes, value: bytes) -> None:
        key = bytes(key)
        with self._lock:
            if key not in self._data:
                bisect.insort(self._keys, key)
            self._data[key] = bytes(value)

    def iterator(
        self,
        start: Optional[bytes] = None,
        end: Optional[bytes] = None,
        reverse: bool = False,
    ) -> Iterator[KVPair]:
        with self._lock:
            lo = 0 if start is None else bisect.bisect_left(self._keys, start)
            hi = len(self._keys) if end is None else bisect.bisect_left(self._keys, end)
            # Snapshot the key range; values are read lazily.
            keys = self._keys[lo:hi]
        if reverse:
            keys.reverse()
        return self._iter_values(keys)

    def _iter_values(self, keys: List[bytes]) -> Iterator[KVPair]:
        for key in keys:
            value = self._data.get(key)
            if value is None:
                continue
            yield key, value

    def __len__(self) -> int:
        return len(self._keys)
