"""
Checkpoint lifecycle stages.
"""

from enum import IntEnum
from typing import Union


class CheckpointStatus(IntEnum):
    """
    Ordered lifecycle of a checkpoint.

    UNCHECKPOINTED is assigned at creation, CONFIRMED is terminal. SEALED and
    SUBMITTED are intermediate stages; the reverse scan treats them like any
    other non-confirmed status.
    """

    UNCHECKPOINTED = 0
    SEALED = 1
    SUBMITTED = 2
    CONFIRMED = 3

    @property
    def is_terminal(self) -> bool:
        return self is CheckpointStatus.CONFIRMED

    @classmethod
    def parse(cls, value: Union["CheckpointStatus", int, str]) -> "CheckpointStatus":
        """
        Parse status from member, integer value or case-insensitive name.

        Raises:
            ValueError: If value does not name a status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid checkpoint status: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
        raise ValueError(f"invalid checkpoint status: {value!r}")
