# backend/app/services/results.py
"""
Tagged results returned by the availability engine and booking operations.

Validation outcomes are values, not exceptions: callers get either Ok or
Rejected(reason, message). Store failures raise BookingStoreError instead.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Reason(str, Enum):
    INVALID_SLOT = "INVALID_SLOT"
    OUT_OF_HOURS = "OUT_OF_HOURS"
    BLOCKED = "BLOCKED"
    CONFLICT = "CONFLICT"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CLIENT_INACTIVE = "CLIENT_INACTIVE"
    INVALID_INPUT = "INVALID_INPUT"


MESSAGES = {
    Reason.INVALID_SLOT: "Invalid slot.",
    Reason.OUT_OF_HOURS: "Slot is outside configured hours.",
    Reason.BLOCKED: "Slot is blocked.",
    Reason.CONFLICT: "Slot has just been taken.",
    Reason.QUOTA_EXCEEDED: "Monthly quota reached.",
    Reason.NOT_FOUND: "Not found.",
    Reason.INVALID_TRANSITION: "Operation not allowed for this booking status.",
    Reason.CLIENT_INACTIVE: "Booking is reserved to clients under contract.",
    Reason.INVALID_INPUT: "Invalid input.",
}


@dataclass(frozen=True)
class Ok:
    value: Any = None
    already_cancelled: bool = False

    ok = True


@dataclass(frozen=True)
class Rejected:
    reason: Reason
    message: str

    ok = False


Result = Ok | Rejected


def reject(reason: Reason, message: str | None = None) -> Rejected:
    return Rejected(reason=reason, message=message or MESSAGES[reason])


class BookingStoreError(Exception):
    """The store failed while running a booking operation."""
