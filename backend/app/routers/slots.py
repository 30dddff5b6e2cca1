# backend/app/routers/slots.py
"""
Slots API endpoints.

GET  /slots/       - every slot of the horizon with its status
POST /slots/check  - point check of one instant pair
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_grid, get_schedule
from ..schemas.slots import SlotCheckRequest, SlotCheckResponse, SlotRead, SlotsResponse
from ..services.slots import (
    ScheduleSettings,
    SlotGridConfig,
    check_slot_availability,
    list_slots,
)

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/", response_model=SlotsResponse)
def get_slots(
    only_available: bool = False,
    db: Session = Depends(get_db),
    schedule: ScheduleSettings = Depends(get_schedule),
    grid: SlotGridConfig = Depends(get_grid),
):
    views = list_slots(db, schedule, grid)
    if only_available:
        views = [v for v in views if v.is_available]
    return SlotsResponse(
        horizon_days=grid.horizon_days,
        slot_minutes=grid.slot_minutes,
        slots=[SlotRead.model_validate(v) for v in views],
    )


@router.post("/check", response_model=SlotCheckResponse)
def check_slot(
    data: SlotCheckRequest,
    db: Session = Depends(get_db),
    schedule: ScheduleSettings = Depends(get_schedule),
    grid: SlotGridConfig = Depends(get_grid),
):
    result = check_slot_availability(
        db, data.start, data.end, schedule, grid,
        exclude_booking_id=data.exclude_booking_id,
    )
    if result.ok:
        return SlotCheckResponse(ok=True)
    return SlotCheckResponse(ok=False, reason=result.reason.value, message=result.message)
