"""
Checkpoint lifecycle store.

Records are kept in an ordered key-value namespace keyed by the big-endian
epoch number, so a reverse iterator visits epochs from highest to lowest.

Scans rely on the confirmation monotonicity invariant: once an epoch is
CONFIRMED, every lower epoch is CONFIRMED too. The store does not enforce
it; the caller applying transitions does.
"""

from typing import Callable, Iterator, Optional

from ..core.errors import (
    DecodeError,
    IdentityMismatch,
    RecordExists,
    RecordNotFound,
    WriteConflict,
)
from ..core.keys import CHECKPOINTS_PREFIX, epoch_from_key, epoch_key
from ..kv.prefix import PrefixKVStore
from ..kv.store import KVStore
from ..logging_config import get_logger
from ..metrics import (
    track_identity_mismatch,
    track_record_created,
    track_scan_duration,
    track_status_update,
)
from .model import RawCheckpoint, digests_equal
from .record import CheckpointRecord, new_checkpoint_record
from .status import CheckpointStatus

# Visitor signature: record -> stop (truthy stops the scan)
Visitor = Callable[[CheckpointRecord], Optional[bool]]


class CheckpointStore:
    """
    Epoch-indexed registry of checkpoint records.

    Usage:
        store = CheckpointStore(MemoryKVStore())
        store.create(ckpt)
        store.update_status(ckpt, CheckpointStatus.CONFIRMED)
        store.scan_by_status(CheckpointStatus.UNCHECKPOINTED, visit)
    """

    def __init__(self, kv: KVStore, prefix: bytes = CHECKPOINTS_PREFIX) -> None:
        """
        Initialize store over an injected key-value handle.

        Args:
            kv: Backend namespace (memory, file, S3, ...)
            prefix: Sub-namespace for checkpoint records
        """
        self.kv = PrefixKVStore(kv, prefix)

    def create(
        self,
        ckpt: RawCheckpoint,
        epoch: Optional[int] = None,
        overwrite: bool = False,
    ) -> CheckpointRecord:
        """
        Insert a checkpoint with status UNCHECKPOINTED, keyed by its epoch.

        Args:
            ckpt: Raw checkpoint produced at epoch finalization
            epoch: Expected epoch (must equal ckpt.epoch_num if given)
            overwrite: Replace an existing record instead of rejecting

        Returns:
            The stored record

        Raises:
            ValueError: If epoch disagrees with ckpt.epoch_num
            RecordExists: If a record already exists and overwrite is False,
                including one written concurrently by another process
        """
        if epoch is not None and epoch != ckpt.epoch_num:
            raise ValueError(
                f"epoch {epoch} does not match checkpoint epoch {ckpt.epoch_num}"
            )
        log = get_logger(__name__, epoch=ckpt.epoch_num)
        key = epoch_key(ckpt.epoch_num)
        record = new_checkpoint_record(ckpt)

        with self.kv.lock():
            if overwrite:
                if self.kv.has(key):
                    log.warning("Overwriting existing checkpoint record")
                self.kv.set(key, record.to_bytes())
            elif not self.kv.compare_and_set(key, None, record.to_bytes()):
                raise RecordExists(ckpt.epoch_num)

        track_record_created()
        log.info("Created checkpoint record %s", ckpt.hash_hex())
        return record

    def get_by_epoch(self, epoch: int) -> CheckpointRecord:
        """
        Retrieve a record by its epoch number.

        Raises:
            RecordNotFound: If no record exists at epoch
            DecodeError: If stored bytes cannot be deserialized
        """
        raw = self.kv.get(epoch_key(epoch))
        if raw is None:
            raise RecordNotFound(epoch)
        return self._decode(raw, epoch)

    def get_status(self, epoch: int) -> CheckpointStatus:
        return self.get_by_epoch(epoch).status

    def has_epoch(self, epoch: int) -> bool:
        return self.kv.has(epoch_key(epoch))

    def latest_epoch(self) -> Optional[int]:
        """Highest epoch with a stored record, or None if the store is empty."""
        for key, _ in self.kv.reverse_iterator():
            return epoch_from_key(key)
        return None

    def iter_records(self, reverse: bool = True) -> Iterator[CheckpointRecord]:
        """
        Lazily decode every record in epoch order.

        Args:
            reverse: Descending epochs (default) or ascending

        Yields:
            Records one at a time; a DecodeError stops iteration
        """
        for key, raw in self.kv.iterator(reverse=reverse):
            yield self._decode(raw, epoch_from_key(key))

    def iter_by_status(self, status: CheckpointStatus) -> Iterator[CheckpointRecord]:
        """
        Lazily yield records with the given status, highest epoch first.

        When status is not CONFIRMED, iteration ends at the first CONFIRMED
        record: by the monotonicity invariant nothing below it can match.
        """
        status = CheckpointStatus.parse(status)
        for record in self.iter_records(reverse=True):
            if status != CheckpointStatus.CONFIRMED and record.status == CheckpointStatus.CONFIRMED:
                return
            if record.status != status:
                continue
            yield record

    def scan_by_status(self, status: CheckpointStatus, visit: Visitor) -> None:
        """
        Visit records with the given status by descending epoch.

        The scan stops when the visitor returns a truthy value, or (for
        non-CONFIRMED queries) at the first CONFIRMED record. The visitor
        must not mutate this store.

        Raises:
            DecodeError: If a visited record cannot be deserialized
        """
        status = CheckpointStatus.parse(status)
        with track_scan_duration(status.name):
            for record in self.iter_by_status(status):
                if visit(record):
                    return

    def update_status(
        self, ckpt: RawCheckpoint, status: CheckpointStatus
    ) -> CheckpointRecord:
        """
        Move the stored checkpoint at ckpt.epoch_num to a new status.

        The stored payload must have the same digest as ckpt; otherwise the
        transition is refused and the stored record is left untouched.

        Returns:
            The updated record

        Raises:
            RecordNotFound: If no record exists at the epoch
            DecodeError: If the stored record cannot be deserialized
            IdentityMismatch: If the stored payload digest differs from ckpt's
            WriteConflict: If another writer changed the record before the write
        """
        status = CheckpointStatus.parse(status)
        log = get_logger(__name__, epoch=ckpt.epoch_num)

        key = epoch_key(ckpt.epoch_num)
        with self.kv.lock():
            raw = self.kv.get(key)
            if raw is None:
                raise RecordNotFound(ckpt.epoch_num)
            stored = self._decode(raw, ckpt.epoch_num)
            if not digests_equal(stored.ckpt, ckpt):
                track_identity_mismatch()
                err = IdentityMismatch(
                    ckpt.epoch_num, stored.ckpt.hash_hex(), ckpt.hash_hex()
                )
                log.error("Refusing status update: %s", err)
                raise err

            if status < stored.status:
                log.warning(
                    "Backward status transition %s -> %s",
                    stored.status.name,
                    status.name,
                )

            updated = stored.with_status(status)
            # Guarded on the bytes read above: a concurrent writer makes this fail
            if not self.kv.compare_and_set(key, raw, updated.to_bytes()):
                log.warning("Record changed during status update; not overwritten")
                raise WriteConflict(ckpt.epoch_num)

        track_status_update(status.name)
        log.info("Checkpoint status %s -> %s", stored.status.name, status.name)
        return updated

    def _decode(self, raw: bytes, epoch: int) -> CheckpointRecord:
        try:
            record = CheckpointRecord.from_bytes(raw)
            if record.epoch_num != epoch:
                raise DecodeError(
                    f"record under epoch {epoch} holds checkpoint for epoch {record.epoch_num}"
                )
        except DecodeError:
            get_logger(__name__, epoch=epoch).error("Stored checkpoint record is unreadable")
            raise
        return record
