# backend/app/services/slots/rules_admin.py
"""
Availability administration: weekly rules, date overrides, recurring holds
and legacy blocks.

Replacing a day's ranges is refused while a confirmed booking would fall
outside the new ranges:
- weekly rules: confirmed bookings on that weekday in the next 90 days
- OPEN ranges for a date: confirmed bookings on that date
"""

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ...models.generated import (
    AvailabilityOverrides as DBOverride,
    AvailabilityRules as DBRule,
    Blocks as DBBlock,
    Bookings as DBBooking,
    Clients as DBClient,
    RecurringHolds as DBHold,
)
from ..booking.locking import booking_lock
from ..results import Ok, Reason, Result, reject
from .rules import BLOCK, OPEN
from .timezones import (
    from_db,
    local_day_and_minute,
    local_day_start_utc,
    local_to_utc,
    local_today,
    parse_time,
    to_db,
)

logger = logging.getLogger(__name__)

GUARD_DAYS = 90
CONFIRMED = "CONFIRMED"


# ── Helpers ──────────────────────────────────────────────────────────────


def parse_ranges(ranges) -> list[tuple[int, int]] | None:
    """[("HH:MM", "HH:MM"), ...] → [(start_min, end_min), ...]; None if any is invalid or the list is empty."""
    parsed = []
    for start_time, end_time in ranges or []:
        start, end = parse_time(start_time), parse_time(end_time)
        if start is None or end is None or start >= end:
            return None
        parsed.append((start, end))
    return parsed or None


def _valid_range(start_time: str, end_time: str) -> bool:
    return parse_ranges([(start_time, end_time)]) is not None


def _fits(booking: DBBooking, ranges: list[tuple[int, int]]) -> bool:
    day, start = local_day_and_minute(from_db(booking.start_at))
    end_day, end = local_day_and_minute(from_db(booking.end_at))
    if end_day != day:
        end = start + int((booking.end_at - booking.start_at).total_seconds() // 60)
    return any(s <= start and end <= e for s, e in ranges)


def _confirmed_between(db: Session, first_day: date, last_day: date) -> list[DBBooking]:
    """Confirmed bookings starting on local days [first_day, last_day)."""
    return (
        db.query(DBBooking)
        .filter(
            DBBooking.status == CONFIRMED,
            DBBooking.start_at >= to_db(local_day_start_utc(first_day)),
            DBBooking.start_at < to_db(local_day_start_utc(last_day)),
        )
        .all()
    )


# ── Weekly rules ─────────────────────────────────────────────────────────


def list_weekly_rules(db: Session) -> list[DBRule]:
    return db.query(DBRule).order_by(DBRule.day_of_week, DBRule.start_time).all()


def create_weekly_rule(db: Session, day_of_week: int, start_time: str, end_time: str) -> Result:
    if not 1 <= day_of_week <= 7 or not _valid_range(start_time, end_time):
        return reject(Reason.INVALID_INPUT, "Invalid time range.")
    rule = DBRule(day_of_week=day_of_week, start_time=start_time, end_time=end_time)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info(f"Weekly rule {rule.id} created: {day_of_week} {start_time}-{end_time}")
    return Ok(rule)


def delete_weekly_rule(db: Session, rule_id: int) -> Result:
    rule = db.get(DBRule, rule_id)
    if not rule:
        return reject(Reason.NOT_FOUND, f"Rule {rule_id} not found")
    db.delete(rule)
    db.commit()
    logger.info(f"Weekly rule {rule_id} deleted")
    return Ok()


def replace_weekly_rules(
    db: Session,
    day_of_week: int,
    ranges,
    now: datetime | None = None,
) -> Result:
    """
    Replace every rule of a weekday with `ranges`, in one transaction.

    Refused with CONFLICT when a confirmed booking on that weekday in the
    next 90 days would fall outside the new ranges.
    """
    if not 1 <= day_of_week <= 7:
        return reject(Reason.INVALID_INPUT, "day_of_week must be 1..7")
    parsed = parse_ranges(ranges)
    if parsed is None:
        return reject(Reason.INVALID_INPUT, "Invalid time ranges.")

    today = local_today(now or datetime.now(timezone.utc))

    with booking_lock(db):
        for booking in _confirmed_between(db, today, today + timedelta(days=GUARD_DAYS)):
            day, _ = local_day_and_minute(from_db(booking.start_at))
            if day.isoweekday() == day_of_week and not _fits(booking, parsed):
                logger.info(f"Weekly rules for day {day_of_week} refused: booking {booking.id} outside")
                return reject(Reason.CONFLICT, "An existing booking falls outside the new ranges.")

        db.query(DBRule).filter(DBRule.day_of_week == day_of_week).delete()
        db.add_all([
            DBRule(day_of_week=day_of_week, start_time=start_time, end_time=end_time)
            for start_time, end_time in ranges
        ])
        db.commit()

    logger.info(f"Weekly rules for day {day_of_week} replaced ({len(parsed)} ranges)")
    return Ok(len(parsed))


def clear_weekly_rules(db: Session, day_of_week: int) -> Result:
    if not 1 <= day_of_week <= 7:
        return reject(Reason.INVALID_INPUT, "day_of_week must be 1..7")
    deleted = db.query(DBRule).filter(DBRule.day_of_week == day_of_week).delete()
    db.commit()
    logger.info(f"Weekly rules for day {day_of_week} cleared ({deleted})")
    return Ok(deleted)


# ── Date overrides ───────────────────────────────────────────────────────


def list_overrides(db: Session, date_from: date | None = None) -> list[DBOverride]:
    query = db.query(DBOverride)
    if date_from:
        query = query.filter(DBOverride.date >= date_from)
    return query.order_by(DBOverride.date, DBOverride.start_time).all()


def create_override(
    db: Session,
    day: date,
    start_time: str,
    end_time: str,
    override_type: str,
    note: str | None = None,
) -> Result:
    if override_type not in (OPEN, BLOCK) or not _valid_range(start_time, end_time):
        return reject(Reason.INVALID_INPUT, "Invalid override.")
    override = DBOverride(
        date=day,
        start_time=start_time,
        end_time=end_time,
        override_type=override_type,
        note=note or None,
    )
    db.add(override)
    db.commit()
    db.refresh(override)
    logger.info(f"Override {override.id} created: {override_type} {day} {start_time}-{end_time}")
    return Ok(override)


def delete_override(db: Session, override_id: int) -> Result:
    override = db.get(DBOverride, override_id)
    if not override:
        return reject(Reason.NOT_FOUND, f"Override {override_id} not found")
    db.delete(override)
    db.commit()
    logger.info(f"Override {override_id} deleted")
    return Ok()


def set_open_ranges_for_date(db: Session, day: date, ranges) -> Result:
    """Replace the OPEN overrides of one date. Refused if a confirmed booking that day would fall outside."""
    parsed = parse_ranges(ranges)
    if parsed is None:
        return reject(Reason.INVALID_INPUT, "Invalid time ranges.")

    with booking_lock(db):
        for booking in _confirmed_between(db, day, day + timedelta(days=1)):
            if not _fits(booking, parsed):
                logger.info(f"OPEN ranges for {day} refused: booking {booking.id} outside")
                return reject(Reason.CONFLICT, "An existing booking falls outside the new ranges.")

        db.query(DBOverride).filter(
            DBOverride.override_type == OPEN,
            DBOverride.date == day,
        ).delete()
        db.add_all([
            DBOverride(date=day, start_time=start_time, end_time=end_time, override_type=OPEN)
            for start_time, end_time in ranges
        ])
        db.commit()

    logger.info(f"OPEN ranges for {day} replaced ({len(parsed)} ranges)")
    return Ok(len(parsed))


def clear_open_ranges_for_date(db: Session, day: date) -> Result:
    deleted = db.query(DBOverride).filter(
        DBOverride.override_type == OPEN,
        DBOverride.date == day,
    ).delete()
    db.commit()
    logger.info(f"OPEN ranges for {day} cleared ({deleted})")
    return Ok(deleted)


# ── Recurring holds ──────────────────────────────────────────────────────


def list_holds(db: Session) -> list[DBHold]:
    return db.query(DBHold).order_by(DBHold.day_of_week, DBHold.start_time).all()


def create_hold(
    db: Session,
    day_of_week: int,
    start_time: str,
    end_time: str,
    client_id: int | None = None,
    note: str | None = None,
) -> Result:
    if not 1 <= day_of_week <= 7 or not _valid_range(start_time, end_time):
        return reject(Reason.INVALID_INPUT, "Invalid time range.")
    if client_id is not None and not db.get(DBClient, client_id):
        return reject(Reason.NOT_FOUND, f"Client {client_id} not found")
    hold = DBHold(
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        client_id=client_id,
        note=note or None,
    )
    db.add(hold)
    db.commit()
    db.refresh(hold)
    logger.info(f"Recurring hold {hold.id} created: {day_of_week} {start_time}-{end_time}")
    return Ok(hold)


def delete_hold(db: Session, hold_id: int) -> Result:
    hold = db.get(DBHold, hold_id)
    if not hold:
        return reject(Reason.NOT_FOUND, f"Recurring hold {hold_id} not found")
    db.delete(hold)
    db.commit()
    logger.info(f"Recurring hold {hold_id} deleted")
    return Ok()


# ── Legacy blocks ────────────────────────────────────────────────────────


def list_blocks(db: Session, now: datetime | None = None) -> list[DBBlock]:
    now = now or datetime.now(timezone.utc)
    return (
        db.query(DBBlock)
        .filter(DBBlock.end_at > to_db(now))
        .order_by(DBBlock.start_at)
        .all()
    )


def create_block(
    db: Session,
    day: date,
    start_time: str,
    duration_minutes: int,
    reason: str | None = None,
) -> Result:
    """Absolute block entered as a working-zone local start plus a duration."""
    start_min = parse_time(start_time)
    if start_min is None or start_min >= 24 * 60 or duration_minutes <= 0:
        return reject(Reason.INVALID_INPUT, "Invalid block.")
    start = local_to_utc(day, start_min)
    block = DBBlock(
        start_at=to_db(start),
        end_at=to_db(start + timedelta(minutes=duration_minutes)),
        reason=reason or None,
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    logger.info(f"Block {block.id} created: {block.start_at} +{duration_minutes}min")
    return Ok(block)


def delete_block(db: Session, block_id: int) -> Result:
    block = db.get(DBBlock, block_id)
    if not block:
        return reject(Reason.NOT_FOUND, f"Block {block_id} not found")
    db.delete(block)
    db.commit()
    logger.info(f"Block {block_id} deleted")
    return Ok()
