"""
Tests for CheckpointStore.

Covers creation, lookup, status transitions guarded by digest identity, and
the reverse status scan with its CONFIRMED short-circuit.
"""

import os
import tempfile

import pytest

from checkpointing.checkpoint import CheckpointStatus, CheckpointStore, RawCheckpoint
from checkpointing.core.errors import (
    DecodeError,
    IdentityMismatch,
    RecordExists,
    RecordNotFound,
    WriteConflict,
)
from checkpointing.core.keys import CHECKPOINTS_PREFIX, epoch_key
from checkpointing.kv import FileKVStore, MemoryKVStore

U = CheckpointStatus.UNCHECKPOINTED
S = CheckpointStatus.SEALED
SUB = CheckpointStatus.SUBMITTED
C = CheckpointStatus.CONFIRMED


@pytest.fixture(params=["memory", "file"])
def store(request):
    if request.param == "memory":
        yield CheckpointStore(MemoryKVStore())
    else:
        with tempfile.TemporaryDirectory() as tmpdir:
            yield CheckpointStore(FileKVStore(os.path.join(tmpdir, "store")))


def _ckpt(epoch: int, seed: int = 0) -> RawCheckpoint:
    return RawCheckpoint(
        epoch_num=epoch,
        last_commit_hash=bytes([epoch % 256, seed]) * 16,
        bitmap=b"\x07",
        bls_multi_sig=b"sig-" + str(epoch).encode(),
    )


def _populate(store, statuses):
    """Create one record per epoch and move it to the given status."""
    for epoch, status in statuses.items():
        ckpt = _ckpt(epoch)
        store.create(ckpt)
        if status != U:
            store.update_status(ckpt, status)


def _scan_epochs(store, status):
    visited = []
    store.scan_by_status(status, lambda r: visited.append(r.epoch_num))
    return visited


def test_create_then_get(store):
    ckpt = _ckpt(7)

    created = store.create(ckpt)
    fetched = store.get_by_epoch(7)

    assert created.status == U
    assert fetched.status == U
    assert fetched.ckpt == ckpt
    assert fetched.hash() == ckpt.hash()
    assert store.get_status(7) == U


def test_create_with_matching_epoch(store):
    store.create(_ckpt(3), epoch=3)

    assert store.has_epoch(3)


def test_create_epoch_mismatch_rejected(store):
    with pytest.raises(ValueError):
        store.create(_ckpt(3), epoch=4)

    assert not store.has_epoch(3)
    assert not store.has_epoch(4)


def test_create_existing_rejected(store):
    store.create(_ckpt(5))
    store.update_status(_ckpt(5), C)

    with pytest.raises(RecordExists) as exc:
        store.create(_ckpt(5, seed=1))

    assert exc.value.epoch == 5
    assert store.get_by_epoch(5).status == C
    assert store.get_by_epoch(5).ckpt == _ckpt(5)


def test_create_overwrite_resets_record(store):
    store.create(_ckpt(5))
    store.update_status(_ckpt(5), C)

    store.create(_ckpt(5, seed=1), overwrite=True)

    record = store.get_by_epoch(5)
    assert record.status == U
    assert record.ckpt == _ckpt(5, seed=1)


def test_get_missing_epoch(store):
    with pytest.raises(RecordNotFound) as exc:
        store.get_by_epoch(99)

    assert exc.value.epoch == 99
    assert not store.has_epoch(99)


def test_records_live_under_namespace_prefix():
    kv = MemoryKVStore()
    store = CheckpointStore(kv)

    store.create(_ckpt(1))

    assert kv.get(CHECKPOINTS_PREFIX + epoch_key(1)) is not None
    assert kv.get(epoch_key(1)) is None


def test_update_status_writes_under_created_key():
    """A transition must rewrite the record create() wrote, not a sibling key."""
    kv = MemoryKVStore()
    store = CheckpointStore(kv)
    store.create(_ckpt(2))

    store.update_status(_ckpt(2), SUB)

    assert len(kv) == 1
    assert store.get_status(2) == SUB


def test_update_status_returns_updated_record(store):
    store.create(_ckpt(4))

    updated = store.update_status(_ckpt(4), S)

    assert updated.status == S
    assert updated.ckpt == _ckpt(4)


def test_update_status_identity_mismatch_leaves_record(store):
    store.create(_ckpt(4))

    with pytest.raises(IdentityMismatch) as exc:
        store.update_status(_ckpt(4, seed=9), C)

    assert exc.value.epoch == 4
    assert exc.value.stored_hash == _ckpt(4).hash_hex()
    assert exc.value.supplied_hash == _ckpt(4, seed=9).hash_hex()
    assert store.get_status(4) == U


def test_update_status_missing_epoch(store):
    with pytest.raises(RecordNotFound):
        store.update_status(_ckpt(11), C)

    assert not store.has_epoch(11)


def test_backward_transition_is_written(store):
    store.create(_ckpt(6))
    store.update_status(_ckpt(6), C)

    store.update_status(_ckpt(6), S)

    assert store.get_status(6) == S


def test_update_status_accepts_status_names(store):
    store.create(_ckpt(6))

    store.update_status(_ckpt(6), "submitted")

    assert store.get_status(6) == SUB


def test_scan_confirmed_visits_descending(store):
    _populate(store, {1: C, 2: C, 3: C})

    assert _scan_epochs(store, C) == [3, 2, 1]


def test_scan_stops_at_first_confirmed(store):
    _populate(store, {1: C, 2: C, 3: U, 4: C})

    # Epoch 3 sits below confirmed epoch 4, so it is never reached
    assert _scan_epochs(store, U) == []
    assert _scan_epochs(store, C) == [4, 2, 1]


def test_scan_unconfirmed_above_confirmed(store):
    _populate(store, {1: C, 2: C, 3: SUB, 4: U, 5: U})

    assert _scan_epochs(store, U) == [5, 4]
    assert _scan_epochs(store, SUB) == [3]
    assert _scan_epochs(store, S) == []


def test_scan_visitor_stop(store):
    _populate(store, {1: U, 2: U, 3: U})
    visited = []

    def visit(record):
        visited.append(record.epoch_num)
        return len(visited) == 2

    store.scan_by_status(U, visit)

    assert visited == [3, 2]


def test_scan_empty_store(store):
    assert _scan_epochs(store, C) == []
    assert _scan_epochs(store, U) == []
    assert store.latest_epoch() is None


def test_latest_epoch(store):
    _populate(store, {2: U, 300: U, 40: C})

    assert store.latest_epoch() == 300


def test_iter_records_order(store):
    _populate(store, {5: U, 1: C, 256: S})

    assert [r.epoch_num for r in store.iter_records()] == [256, 5, 1]
    assert [r.epoch_num for r in store.iter_records(reverse=False)] == [1, 5, 256]


def test_get_corrupt_record_raises_decode_error(store):
    store.kv.set(epoch_key(8), b"\x00garbage")

    with pytest.raises(DecodeError):
        store.get_by_epoch(8)


def test_scan_surfaces_decode_error(store):
    _populate(store, {1: U, 2: U})
    store.kv.set(epoch_key(3), b"{not json")

    with pytest.raises(DecodeError):
        _scan_epochs(store, U)


def test_record_under_wrong_epoch_is_rejected(store):
    store.create(_ckpt(1))
    store.kv.set(epoch_key(2), store.kv.get(epoch_key(1)))

    with pytest.raises(DecodeError):
        store.get_by_epoch(2)


def test_stores_persist_across_reopen():
    with tempfile.TemporaryDirectory() as tmpdir:
        first = CheckpointStore(FileKVStore(tmpdir))
        _populate(first, {1: C, 2: SUB})

        reopened = CheckpointStore(FileKVStore(tmpdir))

        assert reopened.get_status(1) == C
        assert _scan_epochs(reopened, SUB) == [2]


class _InterleavingKV(MemoryKVStore):
    """Lets a competing writer land just before the next conditional write."""

    def __init__(self):
        super().__init__()
        self.before_write = None

    def compare_and_set(self, key, expected, value):
        if self.before_write is not None:
            hook, self.before_write = self.before_write, None
            hook()
        return super().compare_and_set(key, expected, value)


def test_update_status_concurrent_change_raises_write_conflict():
    kv = _InterleavingKV()
    store = CheckpointStore(kv)
    store.create(_ckpt(5))
    other = CheckpointStore(kv)
    kv.before_write = lambda: other.update_status(_ckpt(5), C)

    with pytest.raises(WriteConflict) as exc:
        store.update_status(_ckpt(5), S)

    assert exc.value.epoch == 5
    assert store.get_status(5) == C


def test_create_concurrent_insert_raises_record_exists():
    kv = _InterleavingKV()
    store = CheckpointStore(kv)
    other = CheckpointStore(kv)

    def competing_create():
        other.create(_ckpt(5, seed=1))
        other.update_status(_ckpt(5, seed=1), C)

    kv.before_write = competing_create

    with pytest.raises(RecordExists):
        store.create(_ckpt(5))

    assert store.get_by_epoch(5).ckpt == _ckpt(5, seed=1)
    assert store.get_status(5) == C
