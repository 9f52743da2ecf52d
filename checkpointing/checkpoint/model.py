"""
Raw checkpoint model.

A raw checkpoint captures one epoch's summary:
- Epoch number (primary ordering key)
- Hash of the last commit in the epoch
- Signer bitmap and aggregated signature (opaque here)

Identity is the SHA-256 digest of the canonical encoding, not structural
equality of the Python object.
"""

import hmac
from dataclasses import dataclass
from typing import Any, Dict, Union

from ..core.canonical import canonical_digest
from ..core.keys import MAX_EPOCH

HASH_SIZE = 32

_BYTE_FIELDS = ("last_commit_hash", "bitmap", "bls_multi_sig")


@dataclass(frozen=True)
class RawCheckpoint:
    """
    Immutable checkpoint payload for one epoch.

    Fields:
        epoch_num: Epoch number (unsigned 64-bit)
        last_commit_hash: Hash of the epoch's last commit
        bitmap: Bitmap of signers (opaque)
        bls_multi_sig: Aggregated signature (opaque)
    """
    epoch_num: int
    last_commit_hash: bytes
    bitmap: bytes = b""
    bls_multi_sig: bytes = b""

    def __post_init__(self) -> None:
        if isinstance(self.epoch_num, bool) or not isinstance(self.epoch_num, int):
            raise TypeError(f"epoch_num must be an int, got {type(self.epoch_num).__name__}")
        if self.epoch_num < 0 or self.epoch_num > MAX_EPOCH:
            raise ValueError(f"epoch_num out of range: {self.epoch_num}")
        for name in _BYTE_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bytearray):
                object.__setattr__(self, name, bytes(value))
            elif not isinstance(value, bytes):
                raise TypeError(f"{name} must be bytes, got {type(value).__name__}")

    def to_dict(self) -> Dict[str, Any]:
        """Canonical dict form (byte fields as lowercase hex)."""
        return {
            "epoch_num": self.epoch_num,
            "last_commit_hash": self.last_commit_hash.hex(),
            "bitmap": self.bitmap.hex(),
            "bls_multi_sig": self.bls_multi_sig.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawCheckpoint":
        """
        Build checkpoint from its dict form.

        Raises:
            KeyError: If epoch_num or last_commit_hash is missing
            ValueError: If a byte field is not valid hex
        """
        return cls(
            epoch_num=data["epoch_num"],
            last_commit_hash=bytes.fromhex(data["last_commit_hash"]),
            bitmap=bytes.fromhex(data.get("bitmap", "")),
            bls_multi_sig=bytes.fromhex(data.get("bls_multi_sig", "")),
        )

    def hash(self) -> bytes:
        """SHA-256 digest of the canonical encoding (32 bytes)."""
        return canonical_digest(self.to_dict())

    def hash_hex(self) -> str:
        return self.hash().hex()


def _digest(value: Union[RawCheckpoint, bytes]) -> bytes:
    if isinstance(value, RawCheckpoint):
        return value.hash()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise TypeError(f"expected RawCheckpoint or digest bytes, got {type(value).__name__}")


def digests_equal(a: Union[RawCheckpoint, bytes], b: Union[RawCheckpoint, bytes]) -> bool:
    """
    Compare checkpoint identities by digest.

    Accepts checkpoints or raw digests. Two checkpoints are the same iff their
    digests are equal, regardless of how either object was constructed.
    """
    return hmac.compare_digest(_digest(a), _digest(b))
