# backend/app/schemas/availability.py
"""
Schemas for availability administration.

Times are working-zone wall clock "HH:MM".
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ..services.slots.timezones import as_utc, parse_time


class TimeRange(BaseModel):
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def hh_mm(cls, v: str) -> str:
        if parse_time(v) is None:
            raise ValueError("expected HH:MM")
        return v

    @model_validator(mode="after")
    def ordered(self):
        if parse_time(self.start_time) >= parse_time(self.end_time):
            raise ValueError("start_time must be before end_time")
        return self


class DayRanges(BaseModel):
    ranges: list[TimeRange] = Field(min_length=1)

    def as_pairs(self) -> list[tuple[str, str]]:
        return [(r.start_time, r.end_time) for r in self.ranges]


class RuleCreate(TimeRange):
    day_of_week: int = Field(ge=1, le=7)


class RuleRead(BaseModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str

    model_config = {"from_attributes": True}


class OverrideCreate(TimeRange):
    date: date
    override_type: str = Field(pattern="^(OPEN|BLOCK)$")
    note: Optional[str] = None


class OverrideRead(BaseModel):
    id: int
    date: date
    start_time: str
    end_time: str
    override_type: str
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class HoldCreate(TimeRange):
    day_of_week: int = Field(ge=1, le=7)
    client_id: Optional[int] = None
    note: Optional[str] = None


class HoldRead(BaseModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str
    client_id: Optional[int] = None
    note: Optional[str] = None

    model_config = {"from_attributes": True}


class MaterializeRequest(TimeRange):
    day_of_week: int = Field(ge=1, le=7)
    client_id: Optional[int] = None
    horizon_days: int = Field(default=90, ge=1, le=365)
    note: Optional[str] = None
    mode: str = "VISIO"


class SkippedOccurrenceRead(BaseModel):
    day: date
    start: Optional[datetime] = None
    reason: str


class MaterializeResponse(BaseModel):
    created: int
    skipped: int
    skipped_occurrences: list[SkippedOccurrenceRead] = []


class BlockCreate(BaseModel):
    date: date
    start_time: str
    duration_minutes: int = Field(gt=0)
    reason: Optional[str] = None


class BlockRead(BaseModel):
    id: int
    start_at: datetime
    end_at: datetime
    reason: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("start_at", "end_at", mode="after")
    @classmethod
    def stored_as_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class ClientBlockCreate(TimeRange):
    client_id: int
    date: date
    note: Optional[str] = None
