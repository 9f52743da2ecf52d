"""
File-based ordered key-value store.

One file per key inside a directory. The filename is the key in lowercase hex,
which preserves byte order, so listing and sorting filenames yields keys in
store order.
"""

import os
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional

from ..core.errors import StoreError
from .store import KVPair, KVStore, in_range

try:
    import fcntl
except ImportError:  # Windows or unsupported platform
    fcntl = None

RECORD_SUFFIX = ".rec"
TMP_SUFFIX = ".tmp"
LOCK_NAME = ".lock"


class FileKVStore(KVStore):
    """
    Directory-backed key-value store.

    Storage format:
    - <directory>/<hex(key)>.rec
    - Contents: raw value bytes

    Guarantees:
    - Atomic single-key writes (temp file + fsync + os.replace)
    - Cross-process write lock via fcntl on <directory>/.lock
    """

    def __init__(self, directory: str) -> None:
        """
        Initialize file store.

        Args:
            directory: Directory holding one file per key (created if missing)
        """
        super().__init__()
        self.directory = directory
        self.lock_path = os.path.join(directory, LOCK_NAME)
        self._local = threading.local()

        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as ex:
            raise StoreError(f"cannot create store directory {directory}: {ex}") from ex

    def _path_for_key(self, key: bytes) -> str:
        return os.path.join(self.directory, bytes(key).hex() + RECORD_SUFFIX)

    def get(self, key: bytes) -> Optional[bytes]:
        path = self._path_for_key(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as ex:
            raise StoreError(f"failed to read {path}: {ex}") from ex

    def set(self, key: bytes, value: bytes) -> None:
        path = self._path_for_key(key)
        tmp_path = f"{path}.{os.getpid()}.{threading.get_ident()}{TMP_SUFFIX}"
        try:
            with open(tmp_path, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as ex:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise StoreError(f"failed to write {path}: {ex}") from ex

    def _list_keys(self) -> List[bytes]:
        keys = []
        try:
            names = os.listdir(self.directory)
        except OSError as ex:
            raise StoreError(f"failed to list {self.directory}: {ex}") from ex
        for name in names:
            if not name.endswith(RECORD_SUFFIX):
                continue
            try:
                keys.append(bytes.fromhex(name[: -len(RECORD_SUFFIX)]))
            except ValueError:
                continue
        keys.sort()
        return keys

    def iterator(
        self,
        start: Optional[bytes] = None,
        end: Optional[bytes] = None,
        reverse: bool = False,
    ) -> Iterator[KVPair]:
        keys = [k for k in self._list_keys() if in_range(k, start, end)]
        if reverse:
            keys.reverse()
        return self._iter_values(keys)

    def _iter_values(self, keys: List[bytes]) -> Iterator[KVPair]:
        for key in keys:
            value = self.get(key)
            if value is None:
                continue
            yield key, value

    @contextmanager
    def lock(self) -> Iterator[None]:
        with self._lock:
            depth = getattr(self._local, "depth", 0)
            if depth or fcntl is None:
                self._local.depth = depth + 1
                try:
                    yield
                finally:
                    self._local.depth = depth
                return

            try:
                f = open(self.lock_path, "a+b")
            except OSError as ex:
                raise StoreError(f"failed to open lock file {self.lock_path}: {ex}") from ex
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                self._local.depth = 1
                try:
                    yield
                finally:
                    self._local.depth = 0
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            finally:
                f.close()
