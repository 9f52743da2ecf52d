"""
Exception types for the checkpoint store.

Every error the store surfaces derives from CheckpointingError so the
presentation layer can catch the family and map each kind to its own
response format.
"""

from typing import Optional


class CheckpointingError(Exception):
    """Base class for checkpoint store errors."""
    pass


class RecordNotFound(CheckpointingError):
    """Raised when no record exists at the requested epoch."""

    def __init__(self, epoch: int, message: Optional[str] = None) -> None:
        self.epoch = epoch
        super().__init__(message or f"no raw checkpoint with epoch {epoch}")


class RecordExists(CheckpointingError):
    """Raised when create targets an epoch that already holds a record."""

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        super().__init__(f"raw checkpoint with epoch {epoch} already exists")


class DecodeError(CheckpointingError):
    """Raised when stored bytes cannot be deserialized into a record."""
    pass


class IdentityMismatch(CheckpointingError):
    """Raised when a supplied checkpoint's digest differs from the stored one."""

    def __init__(self, epoch: int, stored_hash: str, supplied_hash: str) -> None:
        self.epoch = epoch
        self.stored_hash = stored_hash
        self.supplied_hash = supplied_hash
        super().__init__(
            f"hash not the same with existing checkpoint at epoch {epoch}: "
            f"stored {stored_hash}, supplied {supplied_hash}"
        )


class StoreError(CheckpointingError):
    """Raised when the underlying key-value backend fails."""
    pass


class WriteConflict(CheckpointingError):
    """Raised when another writer changed a record between read and write."""

    def __init__(self, epoch: int) -> None:
        self.epoch = epoch
        super().__init__(f"checkpoint at epoch {epoch} was modified concurrently")
