# backend/app/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..services.slots.timezones import as_utc


class SlotRead(BaseModel):
    """One generated slot with its status."""
    start: datetime
    end: datetime
    status: str = Field(description="available | booked | blocked")
    label: str
    display_brussels: str
    display_secondary: str
    mode: str
    location: str
    presentiel_location: Optional[str] = None
    presentiel_note: Optional[str] = None

    model_config = {"from_attributes": True}


class SlotsResponse(BaseModel):
    horizon_days: int
    slot_minutes: int
    slots: list[SlotRead]


class SlotCheckRequest(BaseModel):
    start: datetime
    end: datetime
    exclude_booking_id: Optional[int] = None

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class SlotCheckResponse(BaseModel):
    ok: bool
    reason: Optional[str] = None
    message: Optional[str] = None
