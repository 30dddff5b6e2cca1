# backend/app/routers/calendar.py
"""
Calendar feed: confirmed upcoming bookings for external calendar sync.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.bookings import CalendarEntry
from ..services.booking.transactions import list_confirmed_upcoming
from ..services.slots.timezones import from_db

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/feed", response_model=list[CalendarEntry])
def calendar_feed(db: Session = Depends(get_db)):
    return [
        CalendarEntry(
            id=b.id,
            client_name=b.client.name,
            start_at=from_db(b.start_at),
            end_at=from_db(b.end_at),
            mode=b.mode,
        )
        for b in list_confirmed_upcoming(db)
    ]
