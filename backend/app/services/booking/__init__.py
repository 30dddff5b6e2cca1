# backend/app/services/booking/__init__.py
"""
Booking module: transactions under the global booking lock, quota
accounting, manage tokens and notifications.
"""

from .quota import QuotaStatus, quota_status, usage
from .transactions import (
    MaterializationReport,
    cancel_booking,
    create_booking,
    materialize_recurring_hold,
    reschedule_booking,
)

__all__ = [
    "QuotaStatus",
    "quota_status",
    "usage",
    "MaterializationReport",
    "cancel_booking",
    "create_booking",
    "materialize_recurring_hold",
    "reschedule_booking",
]
