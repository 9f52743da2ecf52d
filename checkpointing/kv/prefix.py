"""
Prefixed view over a parent KVStore.

Lets several namespaces share one backend; keys seen through the view have
the prefix stripped.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from ..core.keys import prefix_end
from .store import KVPair, KVStore


class PrefixKVStore(KVStore):
    """
    Sub-namespace of a parent store.

    Writes and reads are forwarded with the prefix prepended. Locking is
    delegated to the parent so all views of one backend share a lock.
    """

    def __init__(self, parent: KVStore, prefix: bytes) -> None:
        super().__init__()
        if not prefix:
            raise ValueError("prefix must be non-empty")
        self.parent = parent
        self.prefix = bytes(prefix)

    def get(self, key: bytes) -> Optional[bytes]:
        return self.parent.get(self.prefix + key)

    def set(self, key: bytes, value: bytes) -> None:
        self.parent.set(self.prefix + key, value)

    def compare_and_set(self, key: bytes, expected: Optional[bytes], value: bytes) -> bool:
        return self.parent.compare_and_set(self.prefix + key, expected, value)

    def iterator(
        self,
        start: Optional[bytes] = None,
        end: Optional[bytes] = None,
        reverse: bool = False,
    ) -> Iterator[KVPair]:
        lo = self.prefix + (start or b"")
        hi = self.prefix + end if end is not None else prefix_end(self.prefix)
        n = len(self.prefix)
        for key, value in self.parent.iterator(lo, hi, reverse=reverse):
            yield key[n:], value

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self.parent.lock():
            yield
