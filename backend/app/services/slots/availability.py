# backend/app/services/slots/availability.py
"""
Availability query engine.

list_slots()               - generator + classifier over the whole horizon
check_slot_availability()  - point check consulted by every write path

Both go through active_ranges_for_day() / is_blocked() so that what is shown
and what is accepted cannot diverge.
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..results import Ok, Reason, Result, reject
from .classifier import AVAILABLE, SlotView, classify_slot, is_blocked
from .config import ScheduleSettings, SlotGridConfig
from .generator import active_ranges_for_day, generate_slots, use_fallback
from .rules import (
    RuleSnapshot,
    find_overlapping_bookings,
    get_holds,
    get_legacy_blocks,
    get_overrides,
    get_weekly_rules,
    has_open_override_between,
    load_snapshot,
)
from .timezones import as_utc, local_day_start_utc, local_today, slot_minutes

logger = logging.getLogger(__name__)


def list_slots(
    db: Session,
    schedule: ScheduleSettings,
    grid: SlotGridConfig,
    now: datetime | None = None,
) -> list[SlotView]:
    """All generated slots of the horizon with their status, ascending."""
    today = local_today(now)
    last_day = today + timedelta(days=grid.horizon_days)
    range_start = local_day_start_utc(today)
    range_end = local_day_start_utc(last_day + timedelta(days=1))

    snapshot = load_snapshot(db, today, last_day, range_start, range_end)
    candidates = generate_slots(today, snapshot, grid, grid.fallback_range(schedule.location))
    views = [classify_slot(slot, snapshot, schedule) for slot in candidates]

    logger.info(
        f"Listed {len(views)} slots from {today} "
        f"({sum(1 for v in views if v.status == AVAILABLE)} available)"
    )
    return views


def _validate_pair(start: datetime, end: datetime, grid: SlotGridConfig):
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        return None
    start, end = as_utc(start), as_utc(end)
    if end - start != timedelta(minutes=grid.slot_minutes):
        return None
    if start.second or start.microsecond:
        return None
    minutes = slot_minutes(start, end)
    if minutes is None or minutes.start % grid.slot_minutes:
        return None
    return start, end, minutes


def check_slot_availability(
    db: Session,
    start: datetime,
    end: datetime,
    schedule: ScheduleSettings,
    grid: SlotGridConfig,
    exclude_booking_id: int | None = None,
    now: datetime | None = None,
) -> Result:
    """
    Is [start, end) bookable right now?

    Rejections, in order: INVALID_SLOT, OUT_OF_HOURS, BLOCKED, CONFLICT.
    exclude_booking_id ignores one booking (rescheduling it onto itself).
    """
    validated = _validate_pair(start, end, grid)
    if validated is None:
        return reject(Reason.INVALID_SLOT)
    start, end, minutes = validated

    today = local_today(now or datetime.now(timezone.utc))
    last_day = today + timedelta(days=grid.horizon_days)
    if not today <= minutes.day <= last_day:
        return reject(Reason.OUT_OF_HOURS)

    snapshot = RuleSnapshot(
        weekly_rules=get_weekly_rules(db),
        overrides=get_overrides(db, minutes.day, minutes.day),
        holds=get_holds(db, minutes.weekday),
        legacy_blocks=get_legacy_blocks(db, start, end),
    )
    fallback = use_fallback(
        snapshot.has_rules,
        has_open_override_between(db, today, last_day),
        grid,
    )
    ranges = active_ranges_for_day(
        minutes.day, snapshot, fallback, grid.fallback_range(schedule.location)
    )
    if not any(s <= minutes.start and minutes.end <= e for s, e in ranges):
        return reject(Reason.OUT_OF_HOURS)

    if is_blocked(minutes, start, end, snapshot):
        return reject(Reason.BLOCKED)

    if find_overlapping_bookings(db, start, end, exclude_booking_id):
        return reject(Reason.CONFLICT)

    return Ok(minutes)
