# backend/app/routers/manage.py
"""
Manage-link endpoints: the token in the path is the only credential.

Client-initiated cancel/reschedule is refused less than
settings.manage_window_hours before the session.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_grid, get_schedule, raise_for_rejection
from ..schemas.bookings import BookingCancelResult, ManageBookingRead, ManageReschedule, BookingRead
from ..services.booking import transactions
from ..services.booking.manage_tokens import get_booking_for_token, within_manage_window
from ..services.results import Reason, reject
from ..services.slots import ScheduleSettings, SlotGridConfig
from ..services.slots.timezones import format_slot_both_zones, from_db

router = APIRouter(prefix="/manage", tags=["manage"])

TOKEN_ERROR = "Link expired or invalid."


def _booking_or_404(db: Session, token: str):
    booking = get_booking_for_token(db, token)
    if not booking:
        raise HTTPException(status_code=404, detail={"reason": "NOT_FOUND", "message": TOKEN_ERROR})
    return booking


def _require_window(booking) -> None:
    if not within_manage_window(booking):
        raise_for_rejection(
            reject(Reason.INVALID_TRANSITION, "Too close to the session to change it online.")
        )


@router.get("/{token}", response_model=ManageBookingRead)
def view_booking(token: str, db: Session = Depends(get_db)):
    booking = _booking_or_404(db, token)
    brussels, secondary = format_slot_both_zones(from_db(booking.start_at))
    return ManageBookingRead(
        id=booking.id,
        start_at=from_db(booking.start_at),
        end_at=from_db(booking.end_at),
        status=booking.status,
        mode=booking.mode,
        client_name=booking.client.name,
        display_brussels=brussels,
        display_secondary=secondary,
        can_modify=booking.status != "CANCELLED" and within_manage_window(booking),
    )


@router.post("/{token}/cancel", response_model=BookingCancelResult)
def cancel_booking(token: str, db: Session = Depends(get_db)):
    booking = _booking_or_404(db, token)
    if booking.status != "CANCELLED":
        _require_window(booking)
    result = transactions.cancel_booking(db, booking.id)
    raise_for_rejection(result)
    return BookingCancelResult(
        booking=BookingRead.model_validate(result.value),
        already_cancelled=result.already_cancelled,
    )


@router.post("/{token}/reschedule", response_model=BookingRead)
def reschedule_booking(
    token: str,
    data: ManageReschedule,
    db: Session = Depends(get_db),
    schedule: ScheduleSettings = Depends(get_schedule),
    grid: SlotGridConfig = Depends(get_grid),
):
    booking = _booking_or_404(db, token)
    _require_window(booking)
    result = transactions.reschedule_booking(
        db, booking.id, data.start, data.start + timedelta(minutes=grid.slot_minutes),
        schedule, grid, reason=None,
    )
    raise_for_rejection(result)
    return result.value
