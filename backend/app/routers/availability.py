# backend/app/routers/availability.py
"""
Availability administration.

/availability/rules                     weekly rules (CRUD, per-day replace)
/availability/overrides                 date overrides (CRUD, per-date OPEN replace)
/availability/recurring_holds           weekly holds (CRUD, materialize)
/availability/blocks                    legacy absolute blocks
/availability/client_blocks             [ADMIN_BLOCK] bookings
"""

from datetime import date

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import raise_for_rejection
from ..schemas.availability import (
    BlockCreate,
    BlockRead,
    ClientBlockCreate,
    DayRanges,
    HoldCreate,
    HoldRead,
    MaterializeRequest,
    MaterializeResponse,
    OverrideCreate,
    OverrideRead,
    RuleCreate,
    RuleRead,
    SkippedOccurrenceRead,
)
from ..schemas.bookings import BookingCancelResult, BookingRead
from ..services.booking import transactions
from ..services.slots import rules_admin

router = APIRouter(prefix="/availability", tags=["availability"])


# ── Weekly rules ─────────────────────────────────────────────────────────


@router.get("/rules", response_model=list[RuleRead])
def list_rules(db: Session = Depends(get_db)):
    return rules_admin.list_weekly_rules(db)


@router.post("/rules", response_model=RuleRead, status_code=status.HTTP_201_CREATED)
def create_rule(data: RuleCreate, db: Session = Depends(get_db)):
    result = rules_admin.create_weekly_rule(db, data.day_of_week, data.start_time, data.end_time)
    raise_for_rejection(result)
    return result.value


@router.delete("/rules/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(id: int, db: Session = Depends(get_db)):
    raise_for_rejection(rules_admin.delete_weekly_rule(db, id))


@router.put("/rules/day/{day_of_week}")
def replace_day_rules(day_of_week: int, data: DayRanges, db: Session = Depends(get_db)):
    result = rules_admin.replace_weekly_rules(db, day_of_week, data.as_pairs())
    raise_for_rejection(result)
    return {"day_of_week": day_of_week, "ranges": result.value}


@router.delete("/rules/day/{day_of_week}")
def clear_day_rules(day_of_week: int, db: Session = Depends(get_db)):
    result = rules_admin.clear_weekly_rules(db, day_of_week)
    raise_for_rejection(result)
    return {"day_of_week": day_of_week, "deleted": result.value}


# ── Date overrides ───────────────────────────────────────────────────────


@router.get("/overrides", response_model=list[OverrideRead])
def list_overrides(date_from: date | None = None, db: Session = Depends(get_db)):
    return rules_admin.list_overrides(db, date_from)


@router.post("/overrides", response_model=OverrideRead, status_code=status.HTTP_201_CREATED)
def create_override(data: OverrideCreate, db: Session = Depends(get_db)):
    result = rules_admin.create_override(
        db, data.date, data.start_time, data.end_time, data.override_type, data.note,
    )
    raise_for_rejection(result)
    return result.value


@router.delete("/overrides/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_override(id: int, db: Session = Depends(get_db)):
    raise_for_rejection(rules_admin.delete_override(db, id))


@router.put("/overrides/date/{day}")
def set_open_ranges(day: date, data: DayRanges, db: Session = Depends(get_db)):
    result = rules_admin.set_open_ranges_for_date(db, day, data.as_pairs())
    raise_for_rejection(result)
    return {"date": day, "ranges": result.value}


@router.delete("/overrides/date/{day}")
def clear_open_ranges(day: date, db: Session = Depends(get_db)):
    result = rules_admin.clear_open_ranges_for_date(db, day)
    raise_for_rejection(result)
    return {"date": day, "deleted": result.value}


# ── Recurring holds ──────────────────────────────────────────────────────


@router.get("/recurring_holds", response_model=list[HoldRead])
def list_holds(db: Session = Depends(get_db)):
    return rules_admin.list_holds(db)


@router.post("/recurring_holds", response_model=HoldRead, status_code=status.HTTP_201_CREATED)
def create_hold(data: HoldCreate, db: Session = Depends(get_db)):
    result = rules_admin.create_hold(
        db, data.day_of_week, data.start_time, data.end_time, data.client_id, data.note,
    )
    raise_for_rejection(result)
    return result.value


@router.delete("/recurring_holds/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_hold(id: int, db: Session = Depends(get_db)):
    raise_for_rejection(rules_admin.delete_hold(db, id))


@router.post("/recurring_holds/materialize", response_model=MaterializeResponse)
def materialize_hold(data: MaterializeRequest, db: Session = Depends(get_db)):
    result = transactions.materialize_recurring_hold(
        db,
        data.day_of_week,
        data.start_time,
        data.end_time,
        client_id=data.client_id,
        horizon_days=data.horizon_days,
        note=data.note,
        mode=data.mode,
    )
    raise_for_rejection(result)
    report = result.value
    return MaterializeResponse(
        created=report.created,
        skipped=report.skipped,
        skipped_occurrences=[
            SkippedOccurrenceRead(day=s.day, start=s.start, reason=s.reason.value)
            for s in report.skipped_occurrences
        ],
    )


# ── Legacy blocks ────────────────────────────────────────────────────────


@router.get("/blocks", response_model=list[BlockRead])
def list_blocks(db: Session = Depends(get_db)):
    return rules_admin.list_blocks(db)


@router.post("/blocks", response_model=BlockRead, status_code=status.HTTP_201_CREATED)
def create_block(data: BlockCreate, db: Session = Depends(get_db)):
    result = rules_admin.create_block(
        db, data.date, data.start_time, data.duration_minutes, data.reason,
    )
    raise_for_rejection(result)
    return result.value


@router.delete("/blocks/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_block(id: int, db: Session = Depends(get_db)):
    raise_for_rejection(rules_admin.delete_block(db, id))


# ── Client blocks ────────────────────────────────────────────────────────


@router.post("/client_blocks", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_client_block(data: ClientBlockCreate, db: Session = Depends(get_db)):
    result = transactions.block_date_for_client(
        db, data.client_id, data.date, data.start_time, data.end_time, data.note,
    )
    raise_for_rejection(result)
    return result.value


@router.post("/client_blocks/{booking_id}/cancel", response_model=BookingCancelResult)
def cancel_client_block(booking_id: int, db: Session = Depends(get_db)):
    result = transactions.cancel_blocked_date(db, booking_id)
    raise_for_rejection(result)
    return BookingCancelResult(
        booking=BookingRead.model_validate(result.value),
        already_cancelled=result.already_cancelled,
    )
