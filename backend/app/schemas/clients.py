# backend/app/schemas/clients.py

from datetime import datetime
from pydantic import BaseModel, EmailStr, Field


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    credits_per_month: int = Field(default=0, ge=0)

    model_config = {"from_attributes": True}


class ClientRead(BaseModel):
    id: int
    name: str
    email: str
    credits_per_month: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ClientCreditsUpdate(BaseModel):
    credits_per_month: int = Field(ge=0)


class ClientActiveUpdate(BaseModel):
    is_active: bool


class QuotaRead(BaseModel):
    client_id: int
    used: int
    limit: int
    remaining: int


class ClientUsage(BaseModel):
    client_id: int
    name: str
    used: int
    limit: int
