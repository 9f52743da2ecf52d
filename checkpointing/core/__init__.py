"""
Core primitives shared by the record model and the store.

- Canonical: Deterministic serialization
- Keys: Big-endian epoch key codec and namespace prefixes
- Errors: Error kinds surfaced to callers
"""

from .canonical import canonicalize, canonical_digest, canonical_json_bytes, canonical_json_str
from .keys import (
    CHECKPOINTS_PREFIX,
    EPOCH_KEY_LEN,
    MAX_EPOCH,
    epoch_key,
    epoch_from_key,
    prefix_end,
)
from .errors import (
    CheckpointingError,
    RecordNotFound,
    RecordExists,
    DecodeError,
    IdentityMismatch,
    StoreError,
    WriteConflict,
)

__all__ = [
    "canonicalize",
    "canonical_json_bytes",
    "canonical_json_str",
    "canonical_digest",
    "CHECKPOINTS_PREFIX",
    "EPOCH_KEY_LEN",
    "MAX_EPOCH",
    "epoch_key",
    "epoch_from_key",
    "prefix_end",
    "CheckpointingError",
    "RecordNotFound",
    "RecordExists",
    "DecodeError",
    "IdentityMismatch",
    "StoreError",
    "WriteConflict",
]
