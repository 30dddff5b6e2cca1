# backend/app/services/slots/rules.py
"""
Read-only access to availability configuration.

Rows are parsed once here into minute-of-day windows; code past this module
never sees "HH:MM" strings.

Four configuration kinds:
✓ weekly rules        (open windows per weekday)
✓ date overrides      (OPEN replaces the day's rules, BLOCK subtracts)
✓ recurring holds     (weekly subtraction)
✓ legacy blocks       (absolute-instant subtraction)

Plus occupancy: non-cancelled bookings.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy.orm import Session

from ...models.generated import (
    AvailabilityOverrides,
    AvailabilityRules,
    Blocks,
    Bookings,
    RecurringHolds,
)
from .timezones import from_db, parse_time, to_db

logger = logging.getLogger(__name__)

OPEN = "OPEN"
BLOCK = "BLOCK"

CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class WeeklyWindow:
    day_of_week: int
    start: int
    end: int


@dataclass(frozen=True)
class DateWindow:
    day: date
    start: int
    end: int
    kind: str


@dataclass(frozen=True)
class HoldWindow:
    day_of_week: int
    start: int
    end: int
    client_id: int | None = None


@dataclass(frozen=True)
class AbsoluteWindow:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Occupancy:
    booking_id: int
    client_id: int
    start: datetime
    end: datetime


@dataclass
class RuleSnapshot:
    """Everything the generator and classifier need for a range of days."""
    weekly_rules: list[WeeklyWindow] = field(default_factory=list)
    overrides: list[DateWindow] = field(default_factory=list)
    holds: list[HoldWindow] = field(default_factory=list)
    legacy_blocks: list[AbsoluteWindow] = field(default_factory=list)
    bookings: list[Occupancy] = field(default_factory=list)

    def __post_init__(self):
        self._overrides_by_day: dict[date, list[DateWindow]] = defaultdict(list)
        for window in self.overrides:
            self._overrides_by_day[window.day].append(window)
        self._rules_by_weekday: dict[int, list[WeeklyWindow]] = defaultdict(list)
        for rule in self.weekly_rules:
            self._rules_by_weekday[rule.day_of_week].append(rule)
        self._holds_by_weekday: dict[int, list[HoldWindow]] = defaultdict(list)
        for hold in self.holds:
            self._holds_by_weekday[hold.day_of_week].append(hold)

    @property
    def has_rules(self) -> bool:
        return bool(self.weekly_rules)

    @property
    def has_open_overrides(self) -> bool:
        return any(w.kind == OPEN for w in self.overrides)

    def rules_for(self, weekday: int) -> list[WeeklyWindow]:
        return self._rules_by_weekday.get(weekday, [])

    def open_overrides_for(self, day: date) -> list[DateWindow]:
        return [w for w in self._overrides_by_day.get(day, []) if w.kind == OPEN]

    def block_overrides_for(self, day: date) -> list[DateWindow]:
        return [w for w in self._overrides_by_day.get(day, []) if w.kind == BLOCK]

    def holds_for(self, weekday: int) -> list[HoldWindow]:
        return self._holds_by_weekday.get(weekday, [])


# ── Parsing ──────────────────────────────────────────────────────────────


def _parse_window(row, label: str) -> tuple[int, int] | None:
    start = parse_time(row.start_time)
    end = parse_time(row.end_time)
    if start is None or end is None or start >= end:
        logger.warning(
            f"Skipping {label} {row.id}: invalid window "
            f"{row.start_time!r}-{row.end_time!r}"
        )
        return None
    return start, end


def _weekly(rows) -> list[WeeklyWindow]:
    result = []
    for row in rows:
        parsed = _parse_window(row, "availability rule")
        if parsed:
            result.append(WeeklyWindow(row.day_of_week, *parsed))
    return result


def _dated(rows) -> list[DateWindow]:
    result = []
    for row in rows:
        parsed = _parse_window(row, "availability override")
        if parsed:
            result.append(DateWindow(row.date, parsed[0], parsed[1], row.override_type))
    return result


def _holds(rows) -> list[HoldWindow]:
    result = []
    for row in rows:
        parsed = _parse_window(row, "recurring hold")
        if parsed:
            result.append(HoldWindow(row.day_of_week, parsed[0], parsed[1], row.client_id))
    return result


def _occupancy(rows) -> list[Occupancy]:
    return [
        Occupancy(row.id, row.client_id, from_db(row.start_at), from_db(row.end_at))
        for row in rows
    ]


# ── Queries ──────────────────────────────────────────────────────────────


def get_weekly_rules(db: Session, day_of_week: int | None = None) -> list[WeeklyWindow]:
    query = db.query(AvailabilityRules)
    if day_of_week is not None:
        query = query.filter(AvailabilityRules.day_of_week == day_of_week)
    return _weekly(query.order_by(AvailabilityRules.day_of_week, AvailabilityRules.start_time).all())


def get_overrides(db: Session, first_day: date, last_day: date) -> list[DateWindow]:
    """Overrides with first_day <= date <= last_day."""
    rows = (
        db.query(AvailabilityOverrides)
        .filter(
            AvailabilityOverrides.date >= first_day,
            AvailabilityOverrides.date <= last_day,
        )
        .order_by(AvailabilityOverrides.date, AvailabilityOverrides.start_time)
        .all()
    )
    return _dated(rows)


def get_holds(db: Session, day_of_week: int | None = None) -> list[HoldWindow]:
    query = db.query(RecurringHolds)
    if day_of_week is not None:
        query = query.filter(RecurringHolds.day_of_week == day_of_week)
    return _holds(query.order_by(RecurringHolds.day_of_week, RecurringHolds.start_time).all())


def get_legacy_blocks(db: Session, start: datetime, end: datetime) -> list[AbsoluteWindow]:
    rows = (
        db.query(Blocks)
        .filter(Blocks.start_at < to_db(end), Blocks.end_at > to_db(start))
        .order_by(Blocks.start_at)
        .all()
    )
    return [AbsoluteWindow(from_db(row.start_at), from_db(row.end_at)) for row in rows]


def find_overlapping_bookings(
    db: Session,
    start: datetime,
    end: datetime,
    exclude_booking_id: int | None = None,
) -> list[Bookings]:
    """Non-cancelled bookings whose [start_at, end_at) overlaps [start, end)."""
    query = db.query(Bookings).filter(
        Bookings.status != CANCELLED,
        Bookings.start_at < to_db(end),
        Bookings.end_at > to_db(start),
    )
    if exclude_booking_id is not None:
        query = query.filter(Bookings.id != exclude_booking_id)
    return query.order_by(Bookings.start_at).all()


def has_open_override_between(db: Session, first_day: date, last_day: date) -> bool:
    return (
        db.query(AvailabilityOverrides.id)
        .filter(
            AvailabilityOverrides.override_type == OPEN,
            AvailabilityOverrides.date >= first_day,
            AvailabilityOverrides.date <= last_day,
        )
        .first()
        is not None
    )


def has_any_weekly_rule(db: Session) -> bool:
    return db.query(AvailabilityRules.id).first() is not None


def load_snapshot(
    db: Session,
    first_day: date,
    last_day: date,
    range_start: datetime,
    range_end: datetime,
) -> RuleSnapshot:
    """Snapshot for local days [first_day, last_day] spanning [range_start, range_end)."""
    snapshot = RuleSnapshot(
        weekly_rules=get_weekly_rules(db),
        overrides=get_overrides(db, first_day, last_day),
        holds=get_holds(db),
        legacy_blocks=get_legacy_blocks(db, range_start, range_end),
        bookings=_occupancy(find_overlapping_bookings(db, range_start, range_end)),
    )
    logger.debug(
        f"Rule snapshot {first_day}..{last_day}: "
        f"rules={len(snapshot.weekly_rules)} overrides={len(snapshot.overrides)} "
        f"holds={len(snapshot.holds)} blocks={len(snapshot.legacy_blocks)} "
        f"bookings={len(snapshot.bookings)}"
    )
    return snapshot
