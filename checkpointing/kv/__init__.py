"""
Ordered key-value namespaces.

This module provides:
- KVStore: Abstract interface (get/set/range-iterate/lock/compare-and-set)
- MemoryKVStore: In-process sorted store
- FileKVStore: Directory-backed store (one file per key)
- S3KVStore: S3-backed store (one object per key)
- PrefixKVStore: Sub-namespace view over another store
"""

from .store import KVStore, KVPair
from .memory import MemoryKVStore
from .file_store import FileKVStore
from .prefix import PrefixKVStore
from .s3_store import S3KVStore

__all__ = [
    "KVStore",
    "KVPair",
    "MemoryKVStore",
    "FileKVStore",
    "PrefixKVStore",
    "S3KVStore",
]
