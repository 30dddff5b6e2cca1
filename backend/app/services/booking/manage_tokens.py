# backend/app/services/booking/manage_tokens.py
"""
Manage-link tokens: a capability letting a client view, cancel or
reschedule one booking without a session.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ...config import settings
from ...models.generated import Bookings as DBBooking
from ..results import BookingStoreError, Ok, Reason, Result, reject
from ..slots.timezones import from_db, to_db

logger = logging.getLogger(__name__)


def new_token(now: datetime) -> tuple[str, datetime]:
    """(64-hex token, naive-UTC expiry)."""
    expires_at = now + timedelta(days=settings.manage_token_ttl_days)
    return secrets.token_hex(32), to_db(expires_at)


def ensure_manage_token(db: Session, booking_id: int, now: datetime | None = None) -> Result:
    """Return the booking's unexpired token, issuing a new one if needed."""
    now = now or datetime.now(timezone.utc)
    booking = db.get(DBBooking, booking_id)
    if not booking:
        return reject(Reason.NOT_FOUND, f"Booking {booking_id} not found")

    expires_at = from_db(booking.manage_token_expires_at)
    if booking.manage_token and expires_at and expires_at > now:
        return Ok(booking.manage_token)

    booking.manage_token, booking.manage_token_expires_at = new_token(now)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise BookingStoreError(str(e)) from e

    logger.info(f"Issued manage token for booking {booking_id}")
    return Ok(booking.manage_token)


def get_booking_for_token(db: Session, token: str, now: datetime | None = None) -> DBBooking | None:
    """Booking owning an unexpired token, client loaded."""
    if not token:
        return None
    now = now or datetime.now(timezone.utc)
    return (
        db.query(DBBooking)
        .options(joinedload(DBBooking.client))
        .filter(
            DBBooking.manage_token == token,
            DBBooking.manage_token_expires_at > to_db(now),
        )
        .first()
    )


def within_manage_window(booking: DBBooking, now: datetime | None = None) -> bool:
    """
    True when the client may still change the booking themselves
    (session starts at least manage_window_hours from now).
    """
    now = now or datetime.now(timezone.utc)
    return from_db(booking.start_at) - now >= timedelta(hours=settings.manage_window_hours)
