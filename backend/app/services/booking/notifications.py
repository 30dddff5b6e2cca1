# backend/app/services/booking/notifications.py
"""
Booking notifications (confirmation / update / cancellation).

Rendering and delivery belong to the worker consuming the events queue;
this module only describes what happened.
"""

import logging
from datetime import datetime

from ...models.generated import Bookings as DBBooking
from ..events import emit_event
from ..slots.timezones import WORKING_TZ, from_db

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_UPDATED = "booking_updated"
BOOKING_CANCELLED = "booking_cancelled"


def notify_booking(
    template: str,
    booking: DBBooking,
    old_start: datetime | None = None,
    old_end: datetime | None = None,
) -> bool:
    """
    Queue a notification for the booking's client.

    Never raises: the booking is already committed when this runs.
    """
    client = booking.client
    payload = {
        "template": template,
        "booking_id": booking.id,
        "client_name": client.name if client else None,
        "client_email": client.email if client else None,
        "start_at": from_db(booking.start_at).isoformat(),
        "end_at": from_db(booking.end_at).isoformat(),
        "mode": booking.mode,
        "time_zone": str(WORKING_TZ),
    }
    if old_start is not None:
        payload["old_start_at"] = from_db(old_start).isoformat()
    if old_end is not None:
        payload["old_end_at"] = from_db(old_end).isoformat()

    sent = emit_event("booking_notification", payload)
    if not sent:
        logger.error(f"Notification {template} for booking {booking.id} not queued")
    return sent
