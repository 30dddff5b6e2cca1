# backend/app/services/slots/classifier.py
"""
Slot classification: available / booked / blocked.

blocked = BLOCK override of the day overlaps
       OR recurring hold of the weekday overlaps
       OR legacy block overlaps the absolute interval
booked  = a non-cancelled booking overlaps

booked is reported over blocked; both mean "not orderable".
"""

from dataclasses import dataclass
from datetime import datetime

from .config import ScheduleSettings
from .generator import CandidateSlot
from .rules import RuleSnapshot
from .timezones import SlotMinutes, format_slot_both_zones, to_local

AVAILABLE = "available"
BOOKED = "booked"
BLOCKED = "blocked"

DAY_NAMES = {
    1: "lundi",
    2: "mardi",
    3: "mercredi",
    4: "jeudi",
    5: "vendredi",
    6: "samedi",
    7: "dimanche",
}

MONTH_NAMES = {
    1: "janv.",
    2: "févr.",
    3: "mars",
    4: "avr.",
    5: "mai",
    6: "juin",
    7: "juil.",
    8: "août",
    9: "sept.",
    10: "oct.",
    11: "nov.",
    12: "déc.",
}


@dataclass(frozen=True)
class SlotView:
    start: datetime
    end: datetime
    status: str
    label: str
    display_brussels: str
    display_secondary: str
    mode: str
    location: str
    presentiel_location: str | None = None
    presentiel_note: str | None = None

    @property
    def is_available(self) -> bool:
        return self.status == AVAILABLE


def minutes_overlap(slot: SlotMinutes, start: int, end: int) -> bool:
    return slot.start < end and slot.end > start


def instants_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


def is_blocked(
    minutes: SlotMinutes,
    start: datetime,
    end: datetime,
    snapshot: RuleSnapshot,
) -> bool:
    """Any of the three subtractive mechanisms covers part of the slot."""
    if any(minutes_overlap(minutes, w.start, w.end) for w in snapshot.block_overrides_for(minutes.day)):
        return True
    if any(minutes_overlap(minutes, h.start, h.end) for h in snapshot.holds_for(minutes.weekday)):
        return True
    return any(instants_overlap(b.start, b.end, start, end) for b in snapshot.legacy_blocks)


def is_booked(start: datetime, end: datetime, snapshot: RuleSnapshot) -> bool:
    return any(instants_overlap(b.start, b.end, start, end) for b in snapshot.bookings)


def slot_label(start: datetime) -> str:
    local = to_local(start)
    day = local.date()
    return f"{DAY_NAMES[day.isoweekday()]} {day.day:02d} {MONTH_NAMES[day.month]}"


def classify_slot(
    slot: CandidateSlot,
    snapshot: RuleSnapshot,
    schedule: ScheduleSettings,
) -> SlotView:
    if is_booked(slot.start, slot.end, snapshot):
        status = BOOKED
    elif is_blocked(slot.minutes, slot.start, slot.end, snapshot):
        status = BLOCKED
    else:
        status = AVAILABLE

    brussels, secondary = format_slot_both_zones(slot.start)
    return SlotView(
        start=slot.start,
        end=slot.end,
        status=status,
        label=slot_label(slot.start),
        display_brussels=brussels,
        display_secondary=secondary,
        mode=schedule.mode_for(slot.minutes.day),
        location=schedule.location,
        presentiel_location=schedule.presentiel_location,
        presentiel_note=schedule.presentiel_note,
    )
