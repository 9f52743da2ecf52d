"""
Tests for query helpers used by the CLI.
"""

import pytest

from checkpointing.checkpoint import CheckpointStatus, CheckpointStore, RawCheckpoint
from checkpointing.core.errors import RecordNotFound
from checkpointing.kv import MemoryKVStore
from checkpointing.query import (
    get_checkpoint,
    latest_confirmed_epoch,
    latest_with_status,
    list_by_status,
    record_to_dict,
)


@pytest.fixture
def store():
    s = CheckpointStore(MemoryKVStore())
    # 1..3 confirmed, 4 submitted, 5..9 uncheckpointed
    for epoch in range(1, 10):
        ckpt = RawCheckpoint(epoch_num=epoch, last_commit_hash=bytes([epoch]) * 32)
        s.create(ckpt)
        if epoch <= 3:
            s.update_status(ckpt, CheckpointStatus.CONFIRMED)
        elif epoch == 4:
            s.update_status(ckpt, CheckpointStatus.SUBMITTED)
    return s


def test_record_to_dict(store):
    data = record_to_dict(store.get_by_epoch(4))

    assert data["epoch_num"] == 4
    assert data["status"] == "SUBMITTED"
    assert data["hash"] == store.get_by_epoch(4).ckpt.hash_hex()
    assert data["ckpt"]["last_commit_hash"] == "04" * 32


def test_get_checkpoint(store):
    assert get_checkpoint(store, 2)["status"] == "CONFIRMED"

    with pytest.raises(RecordNotFound):
        get_checkpoint(store, 42)


def test_latest_with_status(store):
    assert latest_with_status(store, CheckpointStatus.UNCHECKPOINTED).epoch_num == 9
    assert latest_with_status(store, CheckpointStatus.SUBMITTED).epoch_num == 4
    assert latest_with_status(store, CheckpointStatus.SEALED) is None


def test_latest_confirmed_epoch(store):
    assert latest_confirmed_epoch(store) == 3
    assert latest_confirmed_epoch(CheckpointStore(MemoryKVStore())) is None


def test_list_by_status_pages(store):
    def epochs(**kwargs):
        return [r.epoch_num for r in list_by_status(store, CheckpointStatus.UNCHECKPOINTED, **kwargs)]

    assert epochs() == [9, 8, 7, 6, 5]
    assert epochs(limit=2) == [9, 8]
    assert epochs(limit=2, offset=2) == [7, 6]
    assert epochs(offset=4) == [5]
    assert epochs(offset=10) == []
    assert epochs(limit=0) == []


def test_list_by_status_stops_early(store):
    """A full page ends the scan before older records are decoded."""
    visited = []
    original = store.iter_records

    def tracking(reverse=True):
        for record in original(reverse=reverse):
            visited.append(record.epoch_num)
            yield record

    store.iter_records = tracking

    list_by_status(store, CheckpointStatus.UNCHECKPOINTED, limit=1)

    assert visited == [9]


def test_list_by_status_rejects_negative(store):
    with pytest.raises(ValueError):
        list_by_status(store, CheckpointStatus.CONFIRMED, offset=-1)
    with pytest.raises(ValueError):
        list_by_status(store, CheckpointStatus.CONFIRMED, limit=-1)
