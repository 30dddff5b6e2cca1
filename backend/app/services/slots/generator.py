# backend/app/services/slots/generator.py
"""
Candidate slot generation.

Produces the universe of possibly-open one-hour slots for a horizon:

✓ weekly rules of the weekday
✓ OPEN overrides (replace that day's weekly rules)
✓ location fallback window (only when nothing is configured anywhere)

Does NOT contain:
✗ Bookings, BLOCK overrides, holds, legacy blocks (see classifier)
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .config import SlotGridConfig
from .rules import RuleSnapshot
from .timezones import SlotMinutes, iter_days, local_to_utc, slot_minutes


@dataclass(frozen=True)
class CandidateSlot:
    start: datetime
    end: datetime
    minutes: SlotMinutes


def use_fallback(has_rules: bool, has_open_overrides: bool, grid: SlotGridConfig) -> bool:
    """
    Global fallback switch, evaluated once per horizon.

    With no weekly rule anywhere and no OPEN override in the horizon the
    location's default window applies to every day.
    """
    return grid.fallback_when_empty and not has_rules and not has_open_overrides


def active_ranges_for_day(
    day: date,
    snapshot: RuleSnapshot,
    fallback: bool,
    fallback_range: tuple[int, int],
) -> list[tuple[int, int]]:
    """Open minute ranges for a local day, before any subtraction."""
    open_overrides = snapshot.open_overrides_for(day)
    if open_overrides:
        return [(w.start, w.end) for w in open_overrides]
    if snapshot.has_rules:
        return [(r.start, r.end) for r in snapshot.rules_for(day.isoweekday())]
    if fallback:
        return [fallback_range]
    return []


def slots_in_range(day: date, start: int, end: int, step: int) -> list[CandidateSlot]:
    """Whole slots inside [start, end), aligned to the hour."""
    slots = []
    cursor = -(-start // step) * step
    while cursor + step <= end:
        slot_start = local_to_utc(day, cursor)
        slot_end = slot_start + timedelta(minutes=step)
        minutes = slot_minutes(slot_start, slot_end)
        # Wall-clock time missing or repeated on a DST switch day
        if minutes is not None and minutes.day == day and minutes.start == cursor:
            slots.append(CandidateSlot(slot_start, slot_end, minutes))
        cursor += step
    return slots


def generate_slots(
    today: date,
    snapshot: RuleSnapshot,
    grid: SlotGridConfig,
    fallback_range: tuple[int, int],
) -> list[CandidateSlot]:
    """
    Candidate slots for days today .. today + horizon_days, ascending by start.

    Slots from overlapping ranges are de-duplicated by absolute start.
    """
    fallback = use_fallback(snapshot.has_rules, snapshot.has_open_overrides, grid)
    by_start: dict[datetime, CandidateSlot] = {}

    for day in iter_days(today, grid.horizon_days + 1):
        for start, end in active_ranges_for_day(day, snapshot, fallback, fallback_range):
            for slot in slots_in_range(day, start, end, grid.slot_minutes):
                by_start.setdefault(slot.start, slot)

    return [by_start[key] for key in sorted(by_start)]
