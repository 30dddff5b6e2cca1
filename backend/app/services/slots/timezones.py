# backend/app/services/slots/timezones.py
"""
Time/zone helpers for the one-hour slot grid.

Storage: naive UTC datetimes.
Grid arithmetic: (local date, minute-of-day) in the working zone.
Secondary zone: display strings only, never used for classification.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ...config import settings

WORKING_TZ = ZoneInfo(settings.working_timezone)
SECONDARY_TZ = ZoneInfo(settings.secondary_timezone)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class SlotMinutes:
    """A slot expressed in the working zone."""
    day: date
    start: int
    end: int

    @property
    def weekday(self) -> int:
        return self.day.isoweekday()


# ── Storage convention ───────────────────────────────────────────────────


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime. Naive input is taken as UTC (storage format)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_db(dt: datetime) -> datetime:
    return as_utc(dt).replace(tzinfo=None)


def from_db(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    return as_utc(dt)


# ── Zone conversion ──────────────────────────────────────────────────────


def to_local(dt: datetime) -> datetime:
    return as_utc(dt).astimezone(WORKING_TZ)


def to_secondary(dt: datetime) -> datetime:
    return as_utc(dt).astimezone(SECONDARY_TZ)


def local_to_utc(day: date, minute: int) -> datetime:
    """
    Working-zone wall clock → UTC instant.

    Non-existent wall-clock times (spring-forward gap) resolve with the
    pre-transition offset; callers detect them with local_day_and_minute().
    Minute 1440 is midnight of the next day.
    """
    day += timedelta(days=minute // MINUTES_PER_DAY)
    minute %= MINUTES_PER_DAY
    local = datetime.combine(day, time(minute // 60, minute % 60), tzinfo=WORKING_TZ)
    return local.astimezone(timezone.utc)


def local_day_start_utc(day: date) -> datetime:
    return local_to_utc(day, 0)


def local_day_and_minute(dt: datetime) -> tuple[date, int]:
    local = to_local(dt)
    return local.date(), local.hour * 60 + local.minute


def local_today(now: datetime | None = None) -> date:
    now = now or datetime.now(timezone.utc)
    return to_local(now).date()


def slot_minutes(start: datetime, end: datetime) -> SlotMinutes | None:
    """
    Decompose an instant pair into working-zone minutes.

    Returns None when the pair does not map to one local day with the same
    wall-clock width as its absolute width (crosses midnight or a DST switch).
    """
    start_day, start_min = local_day_and_minute(start)
    end_day, end_min = local_day_and_minute(end)
    if start_day != end_day:
        return None
    width = int((as_utc(end) - as_utc(start)).total_seconds() // 60)
    if end_min - start_min != width:
        return None
    return SlotMinutes(day=start_day, start=start_min, end=end_min)


def month_bounds_utc(anchor: datetime) -> tuple[datetime, datetime]:
    """Working-zone calendar month containing anchor, as [start, end) in UTC."""
    local = to_local(anchor)
    first = date(local.year, local.month, 1)
    if local.month == 12:
        next_first = date(local.year + 1, 1, 1)
    else:
        next_first = date(local.year, local.month + 1, 1)
    return local_day_start_utc(first), local_day_start_utc(next_first)


def month_key(dt: datetime) -> tuple[int, int]:
    local = to_local(dt)
    return local.year, local.month


def iter_days(first: date, count: int):
    for offset in range(count):
        yield first + timedelta(days=offset)


# ── Formatting ───────────────────────────────────────────────────────────


def parse_time(value: str | None) -> int | None:
    """"HH:MM" (or "HH") → minute of day, None if malformed."""
    if not value:
        return None
    hour_str, _, minute_str = value.strip().partition(":")
    try:
        hour = int(hour_str)
        minute = int(minute_str or "0")
    except ValueError:
        return None
    if not (0 <= hour <= 24 and 0 <= minute < 60):
        return None
    total = hour * 60 + minute
    if total > MINUTES_PER_DAY:
        return None
    return total


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_slot_both_zones(start: datetime) -> tuple[str, str]:
    """("HH:MM" working zone, "HH:MM" secondary zone)."""
    return to_local(start).strftime("%H:%M"), to_secondary(start).strftime("%H:%M")
