"""
Storage key layout.

Epoch numbers are encoded as fixed-width big-endian integers so that byte
order of keys equals numeric order of epochs.
"""

from typing import Optional

from .errors import DecodeError

EPOCH_KEY_LEN = 8
MAX_EPOCH = 2 ** 64 - 1

# Namespace holding checkpoint records inside a shared backend.
CHECKPOINTS_PREFIX = b"\x01ckpt/"


def epoch_key(epoch: int) -> bytes:
    """
    Encode epoch number as an 8-byte big-endian key.

    Raises:
        ValueError: If epoch is not an unsigned 64-bit integer
    """
    if isinstance(epoch, bool) or not isinstance(epoch, int):
        raise ValueError(f"epoch must be an int, got {type(epoch).__name__}")
    if epoch < 0 or epoch > MAX_EPOCH:
        raise ValueError(f"epoch out of range: {epoch}")
    return epoch.to_bytes(EPOCH_KEY_LEN, "big")


def epoch_from_key(key: bytes) -> int:
    """
    Decode an 8-byte big-endian key back into an epoch number.

    Raises:
        DecodeError: If key has the wrong length
    """
    if len(key) != EPOCH_KEY_LEN:
        raise DecodeError(f"invalid epoch key length {len(key)}: {key.hex()}")
    return int.from_bytes(key, "big")


def prefix_end(prefix: bytes) -> Optional[bytes]:
    """
    Smallest key greater than every key starting with prefix.

    Returns None when no such key exists (empty prefix or all 0xff bytes),
    meaning the range is unbounded above.
    """
    if not prefix:
        return None
    end = bytearray(prefix)
    while end:
        if end[-1] != 0xFF:
            end[-1] += 1
            return bytes(end)
        end.pop()
    return None
