# backend/app/schemas/settings.py

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field, model_validator


class SettingsRead(BaseModel):
    location: str
    default_mode: str
    presentiel_location: str
    presentiel_note: Optional[str] = None

    model_config = {"from_attributes": True}


class SettingsUpdate(BaseModel):
    location: Optional[str] = Field(default=None, pattern="^(MIAMI|BELGIUM)$")
    default_mode: Optional[str] = Field(default=None, pattern="^(VISIO|PRESENTIEL)$")
    presentiel_location: Optional[str] = None
    presentiel_note: Optional[str] = None


class ModeOverrideCreate(BaseModel):
    date_start: date
    date_end: date
    mode: str = Field(pattern="^(VISIO|PRESENTIEL)$")
    note: Optional[str] = None

    @model_validator(mode="after")
    def ordered(self):
        if self.date_end < self.date_start:
            raise ValueError("date_end must not be before date_start")
        return self


class ModeOverrideRead(BaseModel):
    id: int
    date_start: date
    date_end: date
    mode: str
    note: Optional[str] = None

    model_config = {"from_attributes": True}
