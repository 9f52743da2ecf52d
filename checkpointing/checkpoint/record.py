"""
Checkpoint record: a raw checkpoint wrapped with its lifecycle status.

Records are what the store persists, one per epoch.
"""

import json
from dataclasses import dataclass, replace
from typing import Any, Dict

from ..core.canonical import canonical_json_bytes
from ..core.errors import DecodeError
from .model import RawCheckpoint
from .status import CheckpointStatus

RECORD_VERSION = 1


@dataclass(frozen=True)
class CheckpointRecord:
    """
    Immutable record stored per epoch.

    Fields:
        ckpt: Raw checkpoint payload (fixed at creation)
        status: Current lifecycle status (the only field ever updated)
    """
    ckpt: RawCheckpoint
    status: CheckpointStatus = CheckpointStatus.UNCHECKPOINTED

    @property
    def epoch_num(self) -> int:
        return self.ckpt.epoch_num

    def hash(self) -> bytes:
        """Digest of the wrapped checkpoint payload."""
        return self.ckpt.hash()

    def with_status(self, status: CheckpointStatus) -> "CheckpointRecord":
        """Return a copy carrying a new status and the same payload."""
        return replace(self, status=CheckpointStatus.parse(status))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": RECORD_VERSION,
            "status": self.status.name,
            "ckpt": self.ckpt.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CheckpointRecord":
        """
        Deserialize record from dict.

        Raises:
            DecodeError: If the dict is not a valid record
        """
        if not isinstance(data, dict):
            raise DecodeError(f"record must be an object, got {type(data).__name__}")
        version = data.get("version")
        if version != RECORD_VERSION:
            raise DecodeError(f"unsupported record version: {version!r}")
        try:
            status = CheckpointStatus.parse(data["status"])
            ckpt = RawCheckpoint.from_dict(data["ckpt"])
        except (KeyError, TypeError, ValueError, AttributeError) as ex:
            raise DecodeError(f"malformed checkpoint record: {ex!r}") from ex
        return cls(ckpt=ckpt, status=status)

    def to_bytes(self) -> bytes:
        """Canonical bytes for storage."""
        return canonical_json_bytes(self.to_dict())

    @classmethod
    def from_bytes(cls, raw: bytes) -> "CheckpointRecord":
        """
        Deserialize record from stored bytes.

        Raises:
            DecodeError: If bytes are not a valid record
        """
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as ex:
            raise DecodeError(f"unreadable checkpoint record: {ex}") from ex
        return cls.from_dict(data)


def new_checkpoint_record(ckpt: RawCheckpoint) -> CheckpointRecord:
    """Wrap a freshly finalized checkpoint with the initial status."""
    return CheckpointRecord(ckpt=ckpt, status=CheckpointStatus.UNCHECKPOINTED)
