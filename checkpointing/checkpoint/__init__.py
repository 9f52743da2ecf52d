"""
Checkpoint record model and lifecycle store.

Provides:
- RawCheckpoint with canonical digest
- CheckpointStatus lifecycle enum
- CheckpointRecord with deterministic serialization
- CheckpointStore: create / lookup / reverse scan / verified status update
- Monotonicity audit over the whole store
"""

from .model import RawCheckpoint, digests_equal, HASH_SIZE
from .status import CheckpointStatus
from .record import CheckpointRecord, new_checkpoint_record, RECORD_VERSION
from .store import CheckpointStore, Visitor
from .verify import verify_monotonicity, MonotonicityReport

__all__ = [
    "RawCheckpoint",
    "digests_equal",
    "HASH_SIZE",
    "CheckpointStatus",
    "CheckpointRecord",
    "new_checkpoint_record",
    "RECORD_VERSION",
    "CheckpointStore",
    "Visitor",
    "verify_monotonicity",
    "MonotonicityReport",
]
