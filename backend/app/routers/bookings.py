# backend/app/routers/bookings.py
"""
Bookings API.

Every write goes through the booking transaction manager; rejections come
back as {"reason", "message"} details.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_grid, get_schedule, raise_for_rejection
from ..schemas.bookings import (
    BookingCancel,
    BookingCancelResult,
    BookingCreate,
    BookingModeUpdate,
    BookingRead,
    BookingReschedule,
    BookingStatusUpdate,
)
from ..services.booking import transactions
from ..services.slots import ScheduleSettings, SlotGridConfig

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    client_id: Optional[int] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return transactions.list_bookings(db, client_id, status, date_from, date_to)


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    booking = transactions.get_booking(db, id)
    if not booking:
        raise HTTPException(status_code=404, detail="Not found")
    return booking


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    schedule: ScheduleSettings = Depends(get_schedule),
    grid: SlotGridConfig = Depends(get_grid),
):
    result = transactions.create_booking(db, data.client_id, data.start, data.end, schedule, grid)
    raise_for_rejection(result)
    return result.value


@router.post("/{id}/reschedule", response_model=BookingRead)
def reschedule_booking(
    id: int,
    data: BookingReschedule,
    db: Session = Depends(get_db),
    schedule: ScheduleSettings = Depends(get_schedule),
    grid: SlotGridConfig = Depends(get_grid),
):
    result = transactions.reschedule_booking(
        db, id, data.start, data.end, schedule, grid, reason=data.reason,
    )
    raise_for_rejection(result)
    return result.value


@router.post("/{id}/cancel", response_model=BookingCancelResult)
def cancel_booking(id: int, data: BookingCancel | None = None, db: Session = Depends(get_db)):
    result = transactions.cancel_booking(db, id, reason=data.reason if data else None)
    raise_for_rejection(result)
    return BookingCancelResult(
        booking=BookingRead.model_validate(result.value),
        already_cancelled=result.already_cancelled,
    )


@router.patch("/{id}/status", response_model=BookingRead)
def update_status(id: int, data: BookingStatusUpdate, db: Session = Depends(get_db)):
    result = transactions.update_booking_status(db, id, data.status)
    raise_for_rejection(result)
    return result.value


@router.patch("/{id}/mode", response_model=BookingRead)
def update_mode(id: int, data: BookingModeUpdate, db: Session = Depends(get_db)):
    result = transactions.update_booking_mode(db, id, data.mode)
    raise_for_rejection(result)
    return result.value


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
