"""
Read helpers for the presentation layer.

Maps external requests ("checkpoint at epoch N", "latest confirmed",
"list by status") onto store lookups and scans, and shapes results for
JSON output.
"""

from typing import Any, Dict, List, Optional

from .checkpoint.record import CheckpointRecord
from .checkpoint.status import CheckpointStatus
from .checkpoint.store import CheckpointStore


def record_to_dict(record: CheckpointRecord) -> Dict[str, Any]:
    """JSON-ready view of a record, including its digest."""
    return {
        "epoch_num": record.epoch_num,
        "status": record.status.name,
        "hash": record.ckpt.hash_hex(),
        "ckpt": record.ckpt.to_dict(),
    }


def get_checkpoint(store: CheckpointStore, epoch: int) -> Dict[str, Any]:
    """
    Raises:
        RecordNotFound: If no record exists at epoch
    """
    return record_to_dict(store.get_by_epoch(epoch))


def latest_with_status(
    store: CheckpointStore, status: CheckpointStatus
) -> Optional[CheckpointRecord]:
    """Highest-epoch record with the given status, or None."""
    found: List[CheckpointRecord] = []

    def visit(record: CheckpointRecord) -> bool:
        found.append(record)
        return True

    store.scan_by_status(status, visit)
    return found[0] if found else None


def latest_confirmed_epoch(store: CheckpointStore) -> Optional[int]:
    record = latest_with_status(store, CheckpointStatus.CONFIRMED)
    return record.epoch_num if record is not None else None


def list_by_status(
    store: CheckpointStore,
    status: CheckpointStatus,
    limit: Optional[int] = None,
    offset: int = 0,
) -> List[CheckpointRecord]:
    """
    Page through records with the given status, highest epoch first.

    The scan stops as soon as offset + limit matches have been seen.

    Raises:
        ValueError: If limit or offset is negative
    """
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")
    if limit is not None and limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")
    if limit == 0:
        return []

    page: List[CheckpointRecord] = []
    seen = 0

    def visit(record: CheckpointRecord) -> bool:
        nonlocal seen
        seen += 1
        if seen <= offset:
            return False
        page.append(record)
        return limit is not None and len(page) >= limit

    store.scan_by_status(status, visit)
    return page
