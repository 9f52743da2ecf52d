"""
KVStore abstract interface.

Defines the ordered key-value namespace the checkpoint store is built on.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

KVPair = Tuple[bytes, bytes]


class KVStore(ABC):
    """
    Abstract ordered key-value namespace.

    All implementations must guarantee:
    - Keys iterate in byte-lexicographic order (descending when reversed)
    - Single-key writes are atomic (no partial value is ever visible)
    - lock() serializes read-modify-write sequences against other writers
    - compare_and_set() never overwrites a value another writer changed

    Iterators are lazy and restartable per call: each call to iterator()
    yields a fresh sequence over the key set as it was when iteration began.
    Mutating the store while iterating it is undefined behaviour.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def get(self, key: bytes) -> Optional[bytes]:
        """
        Get value stored at key.

        Returns:
            Stored bytes, or None if key is absent

        Raises:
            StoreError: If backend read fails
        """
        ...

    @abstractmethod
    def set(self, key: bytes, value: bytes) -> None:
        """
        Store value at key, replacing any existing value.

        Raises:
            StoreError: If backend write fails
        """
        ...

    @abstractmethod
    def iterator(
        self,
        start: Optional[bytes] = None,
        end: Optional[bytes] = None,
        reverse: bool = False,
    ) -> Iterator[KVPair]:
        """
        Iterate key/value pairs in the half-open range [start, end).

        Args:
            start: Inclusive lower bound (None = unbounded)
            end: Exclusive upper bound (None = unbounded)
            reverse: Yield from highest key to lowest

        Yields:
            (key, value) tuples in key order
        """
        ...

    def has(self, key: bytes) -> bool:
        return self.get(key) is not None

    def reverse_iterator(
        self, start: Optional[bytes] = None, end: Optional[bytes] = None
    ) -> Iterator[KVPair]:
        """Iterate [start, end) from highest key to lowest."""
        return self.iterator(start, end, reverse=True)

    def compare_and_set(self, key: bytes, expected: Optional[bytes], value: bytes) -> bool:
        """
        Write value only if the key still holds expected.

        Args:
            key: Key to write
            expected: Value the caller last read (None = key must be absent)
            value: New value

        Returns:
            True if written, False if the stored value differed

        Default runs get-compare-set under lock(). Backends whose lock does
        not reach other processes override this with a native conditional
        write.
        """
        with self.lock():
            if self.get(key) != expected:
                return False
            self.set(key, value)
            return True

    @contextmanager
    def lock(self) -> Iterator[None]:
        """
        Hold the namespace write lock.

        Default is a process-local reentrant lock. Backends with a native
        locking discipline override this.
        """
        with self._lock:
            yield


def in_range(key: bytes, start: Optional[bytes], end: Optional[bytes]) -> bool:
    """Check key against half-open range [start, end)."""
    if start is not None and key < start:
        return False
    if end is not None and key >= end:
        return False
    return True
