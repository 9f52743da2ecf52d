"""
Confirmation monotonicity audit.

The reverse scan stops at the first CONFIRMED record when looking for any
other status. If a lower epoch is not CONFIRMED, that record is invisible to
such scans. This audit walks the full store without short-circuiting and
reports those epochs.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..core.errors import DecodeError
from .status import CheckpointStatus
from .store import CheckpointStore


@dataclass
class MonotonicityReport:
    """
    Result of a monotonicity audit.

    Fields:
        valid: No violations found and every record decoded
        checked: Number of records examined
        highest_confirmed: Highest CONFIRMED epoch (None if none confirmed)
        violations: Non-CONFIRMED epochs below highest_confirmed, ascending
        error: Error message if the audit could not complete
    """
    valid: bool
    checked: int = 0
    highest_confirmed: Optional[int] = None
    violations: List[int] = field(default_factory=list)
    error: Optional[str] = None


def verify_monotonicity(store: CheckpointStore) -> MonotonicityReport:
    """
    Check that every epoch below the highest CONFIRMED one is CONFIRMED.

    Args:
        store: Checkpoint store to audit

    Returns:
        MonotonicityReport; decode failures are reported, not raised
    """
    checked = 0
    highest_confirmed: Optional[int] = None
    violations: List[int] = []

    try:
        for record in store.iter_records(reverse=True):
            checked += 1
            if record.status == CheckpointStatus.CONFIRMED:
                if highest_confirmed is None:
                    highest_confirmed = record.epoch_num
                continue
            if highest_confirmed is not None:
                violations.append(record.epoch_num)
    except DecodeError as e:
        return MonotonicityReport(
            valid=False,
            checked=checked,
            highest_confirmed=highest_confirmed,
            violations=sorted(violations),
            error=f"Unreadable record after {checked} checked: {e}",
        )

    return MonotonicityReport(
        valid=not violations,
        checked=checked,
        highest_confirmed=highest_confirmed,
        violations=sorted(violations),
    )
