# backend/app/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, field_validator

from ..services.slots.timezones import as_utc


class BookingCreate(BaseModel):
    client_id: int
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class BookingReschedule(BaseModel):
    start: datetime
    end: datetime
    reason: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingStatusUpdate(BaseModel):
    status: str


class BookingModeUpdate(BaseModel):
    mode: str


class BookingRead(BaseModel):
    id: int
    client_id: int

    start_at: datetime
    end_at: datetime

    status: str
    mode: str
    cancel_reason: Optional[str] = None
    reschedule_reason: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("start_at", "end_at", "created_at", "updated_at", mode="after")
    @classmethod
    def stored_as_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class BookingCancelResult(BaseModel):
    booking: BookingRead
    already_cancelled: bool = False


class ManageBookingRead(BaseModel):
    """What a manage-link holder sees."""
    id: int
    start_at: datetime
    end_at: datetime
    status: str
    mode: str
    client_name: str
    display_brussels: str
    display_secondary: str
    can_modify: bool


class ManageReschedule(BaseModel):
    """New start; the slot is start + 1 hour."""
    start: datetime

    @field_validator("start")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class CalendarEntry(BaseModel):
    id: int
    client_name: str
    start_at: datetime
    end_at: datetime
    mode: str
