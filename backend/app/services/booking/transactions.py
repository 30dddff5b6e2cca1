# backend/app/services/booking/transactions.py
"""
Booking Transaction Manager.

The only code allowed to create, reschedule or cancel a booking.

Each write:
✓ takes the booking lock
✓ re-runs check_slot_availability() inside it (conflict query included)
✓ checks the monthly quota live (create / materialize)
✓ commits
✓ queues a notification after commit (failures logged, never raised)
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session, joinedload

from ...models.generated import Blocks as DBBlock, Bookings as DBBooking, Clients as DBClient
from ..results import Ok, Reason, Result, reject
from ..slots.availability import check_slot_availability
from ..slots.config import MODES, ScheduleSettings, SlotGridConfig
from ..slots.rules import find_overlapping_bookings
from ..slots.timezones import (
    as_utc,
    local_day_and_minute,
    local_to_utc,
    local_today,
    month_key,
    parse_time,
    to_db,
)
from .locking import booking_lock
from .manage_tokens import new_token
from .notifications import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_UPDATED,
    notify_booking,
)
from .quota import usage, usage_by_month

logger = logging.getLogger(__name__)

CONFIRMED = "CONFIRMED"
CANCELLED = "CANCELLED"
NO_SHOW = "NO_SHOW"
DONE = "DONE"
STATUSES = (CONFIRMED, CANCELLED, NO_SHOW, DONE)

RECURRING_HOLD_TAG = "[RECURRING_HOLD]"
ADMIN_BLOCK_TAG = "[ADMIN_BLOCK]"


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now else datetime.now(timezone.utc)


def _tagged(tag: str, note: str | None) -> str:
    note = (note or "").strip()
    return f"{tag} {note}" if note else tag


def get_booking(db: Session, booking_id: int) -> DBBooking | None:
    return (
        db.query(DBBooking)
        .options(joinedload(DBBooking.client))
        .filter(DBBooking.id == booking_id)
        .first()
    )


# ── Create / reschedule / cancel ─────────────────────────────────────────


def create_booking(
    db: Session,
    client_id: int,
    start: datetime,
    end: datetime,
    schedule: ScheduleSettings,
    grid: SlotGridConfig,
    now: datetime | None = None,
) -> Result:
    """
    Book [start, end) for a client.

    Rejections: NOT_FOUND, CLIENT_INACTIVE, INVALID_SLOT, OUT_OF_HOURS,
    BLOCKED, CONFLICT, QUOTA_EXCEEDED.
    """
    now = _now(now)

    with booking_lock(db):
        client = db.get(DBClient, client_id)
        if not client:
            return reject(Reason.NOT_FOUND, f"Client {client_id} not found")
        if not client.is_active:
            return reject(Reason.CLIENT_INACTIVE)

        check = check_slot_availability(db, start, end, schedule, grid, now=now)
        if not check.ok:
            logger.info(f"Booking refused for client {client_id} at {start}: {check.reason.value}")
            return check
        minutes = check.value

        used = usage(db, client_id, now)
        if used >= client.credits_per_month:
            logger.info(
                f"Booking refused for client {client_id} at {start}: "
                f"quota {used}/{client.credits_per_month} this month"
            )
            return reject(Reason.QUOTA_EXCEEDED)

        token, token_expires_at = new_token(now)
        booking = DBBooking(
            client_id=client_id,
            start_at=to_db(start),
            end_at=to_db(end),
            status=CONFIRMED,
            mode=schedule.mode_for(minutes.day),
            manage_token=token,
            manage_token_expires_at=token_expires_at,
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)

    logger.info(f"Booking {booking.id} created for client {client_id} at {booking.start_at}")
    notify_booking(BOOKING_CONFIRMED, booking)
    return Ok(booking)


def reschedule_booking(
    db: Session,
    booking_id: int,
    new_start: datetime,
    new_end: datetime,
    schedule: ScheduleSettings,
    grid: SlotGridConfig,
    reason: str | None = None,
    now: datetime | None = None,
) -> Result:
    """
    Move a booking to a new slot. Quota is not re-checked.

    The reschedule note is replaced by `reason`. When `reason` is None the
    existing note, with its [ADMIN_BLOCK]/[RECURRING_HOLD] tag, is kept.
    """
    now = _now(now)

    with booking_lock(db):
        booking = db.get(DBBooking, booking_id)
        if not booking:
            return reject(Reason.NOT_FOUND, f"Booking {booking_id} not found")
        if booking.status == CANCELLED:
            return reject(Reason.INVALID_TRANSITION, "Booking is cancelled.")

        check = check_slot_availability(
            db, new_start, new_end, schedule, grid,
            exclude_booking_id=booking_id, now=now,
        )
        if not check.ok:
            logger.info(f"Reschedule of booking {booking_id} refused: {check.reason.value}")
            return check

        old_start, old_end = booking.start_at, booking.end_at
        booking.start_at = to_db(new_start)
        booking.end_at = to_db(new_end)
        booking.status = CONFIRMED
        if reason is not None:
            booking.reschedule_reason = reason
        db.commit()
        db.refresh(booking)

    logger.info(f"Booking {booking_id} moved {old_start} → {booking.start_at}")
    notify_booking(BOOKING_UPDATED, booking, old_start=old_start, old_end=old_end)
    return Ok(booking)


def cancel_booking(db: Session, booking_id: int, reason: str | None = None) -> Result:
    """
    Cancel a booking. Idempotent: an already cancelled booking is a success
    with already_cancelled=True. NO_SHOW and DONE cannot be cancelled.
    """
    with booking_lock(db):
        booking = db.get(DBBooking, booking_id)
        if not booking:
            return reject(Reason.NOT_FOUND, f"Booking {booking_id} not found")
        if booking.status == CANCELLED:
            return Ok(booking, already_cancelled=True)
        if booking.status != CONFIRMED:
            return reject(
                Reason.INVALID_TRANSITION,
                f"Booking in status {booking.status} cannot be cancelled.",
            )

        booking.status = CANCELLED
        booking.cancel_reason = reason
        db.commit()
        db.refresh(booking)

    logger.info(f"Booking {booking_id} cancelled")
    notify_booking(BOOKING_CANCELLED, booking)
    return Ok(booking)


# ── Admin status / mode ──────────────────────────────────────────────────


def update_booking_status(db: Session, booking_id: int, status: str) -> Result:
    """
    Admin status change.

    CANCELLED goes through cancel_booking(); a cancelled booking cannot be
    revived. Moving back to CONFIRMED re-sends the confirmation.
    """
    if status not in STATUSES:
        return reject(Reason.INVALID_INPUT, f"Unknown status {status}")
    if status == CANCELLED:
        return cancel_booking(db, booking_id)

    with booking_lock(db):
        booking = db.get(DBBooking, booking_id)
        if not booking:
            return reject(Reason.NOT_FOUND, f"Booking {booking_id} not found")
        if booking.status == CANCELLED:
            return reject(Reason.INVALID_TRANSITION, "Booking is cancelled.")

        previous = booking.status
        booking.status = status
        db.commit()
        db.refresh(booking)

    logger.info(f"Booking {booking_id} status {previous} → {status}")
    if status == CONFIRMED and previous != CONFIRMED:
        notify_booking(BOOKING_CONFIRMED, booking)
    return Ok(booking)


def update_booking_mode(db: Session, booking_id: int, mode: str) -> Result:
    if mode not in MODES:
        return reject(Reason.INVALID_INPUT, f"Unknown mode {mode}")

    with booking_lock(db):
        booking = db.get(DBBooking, booking_id)
        if not booking:
            return reject(Reason.NOT_FOUND, f"Booking {booking_id} not found")
        previous = booking.mode
        booking.mode = mode
        db.commit()
        db.refresh(booking)

    if mode != previous:
        logger.info(f"Booking {booking_id} mode {previous} → {mode}")
        notify_booking(BOOKING_UPDATED, booking)
    return Ok(booking)


# ── Admin client blocks ──────────────────────────────────────────────────


def block_date_for_client(
    db: Session,
    client_id: int,
    day: date,
    start_time: str,
    end_time: str,
    note: str | None = None,
) -> Result:
    """
    Reserve an arbitrary local time range for a client as a CONFIRMED
    booking tagged [ADMIN_BLOCK]. Only overlap with other bookings is checked.
    """
    start_min, end_min = parse_time(start_time), parse_time(end_time)
    if start_min is None or end_min is None or start_min >= end_min:
        return reject(Reason.INVALID_INPUT, "Invalid time range.")

    start, end = local_to_utc(day, start_min), local_to_utc(day, end_min)
    if end <= start:
        return reject(Reason.INVALID_INPUT, "Invalid time range.")

    with booking_lock(db):
        if not db.get(DBClient, client_id):
            return reject(Reason.NOT_FOUND, f"Client {client_id} not found")
        if find_overlapping_bookings(db, start, end):
            return reject(Reason.CONFLICT, "Conflicts with an existing booking.")

        booking = DBBooking(
            client_id=client_id,
            start_at=to_db(start),
            end_at=to_db(end),
            status=CONFIRMED,
            mode="VISIO",
            reschedule_reason=_tagged(ADMIN_BLOCK_TAG, note),
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)

    logger.info(f"Admin block {booking.id} for client {client_id} on {day} {start_time}-{end_time}")
    return Ok(booking)


def cancel_blocked_date(db: Session, booking_id: int) -> Result:
    """Cancel a booking created by block_date_for_client(), and only those."""
    booking = db.get(DBBooking, booking_id)
    if not booking:
        return reject(Reason.NOT_FOUND, f"Booking {booking_id} not found")
    if not (booking.reschedule_reason or "").startswith(ADMIN_BLOCK_TAG):
        return reject(Reason.INVALID_INPUT, "Booking is not an admin block.")
    return cancel_booking(db, booking_id)


# ── Recurring hold materialization ───────────────────────────────────────


@dataclass
class SkippedOccurrence:
    start: datetime | None
    day: date
    reason: Reason


@dataclass
class MaterializationReport:
    created: int = 0
    skipped: int = 0
    skipped_occurrences: list[SkippedOccurrence] = field(default_factory=list)

    def skip(self, day: date, start: datetime | None, reason: Reason) -> None:
        self.skipped += 1
        self.skipped_occurrences.append(SkippedOccurrence(start=start, day=day, reason=reason))


def _occurrence_days(today: date, day_of_week: int, horizon_days: int) -> list[date]:
    offset = (day_of_week - today.isoweekday()) % 7
    first = today + timedelta(days=offset)
    last = today + timedelta(days=horizon_days)
    days = []
    day = first
    while day < last:
        days.append(day)
        day += timedelta(days=7)
    return days


def _occurrence(day: date, start_min: int, end_min: int) -> tuple[datetime, datetime] | None:
    """UTC instants of one occurrence, None if that local time does not exist that day."""
    start, end = local_to_utc(day, start_min), local_to_utc(day, end_min)
    if local_day_and_minute(start) != (day, start_min):
        return None
    if end - start != timedelta(minutes=end_min - start_min):
        return None
    return start, end


def materialize_recurring_hold(
    db: Session,
    day_of_week: int,
    start_time: str,
    end_time: str,
    client_id: int | None = None,
    horizon_days: int = 90,
    note: str | None = None,
    mode: str = "VISIO",
    now: datetime | None = None,
) -> Result:
    """
    Turn a weekly time range into concrete occurrences over
    [today, today + horizon_days).

    With a client: CONFIRMED bookings tagged [RECURRING_HOLD], limited by the
    client's monthly credits. Quota is simulated month by month across the
    batch, so several occurrences in one month cannot over-allocate.
    Without a client: legacy blocks.

    Occurrences overlapping a non-cancelled booking or an earlier accepted
    occurrence are skipped with CONFLICT. Survivors are inserted in one batch
    and committed once.
    """
    if not 1 <= day_of_week <= 7:
        return reject(Reason.INVALID_INPUT, "day_of_week must be 1..7")
    start_min, end_min = parse_time(start_time), parse_time(end_time)
    if start_min is None or end_min is None or start_min >= end_min:
        return reject(Reason.INVALID_INPUT, "Invalid time range.")
    if horizon_days < 1:
        return reject(Reason.INVALID_INPUT, "horizon_days must be >= 1")
    if mode not in MODES:
        return reject(Reason.INVALID_INPUT, f"Unknown mode {mode}")

    now = _now(now)
    today = local_today(now)
    report = MaterializationReport()

    with booking_lock(db):
        client = None
        if client_id is not None:
            client = db.get(DBClient, client_id)
            if not client:
                return reject(Reason.NOT_FOUND, f"Client {client_id} not found")

        occurrences = []
        for day in _occurrence_days(today, day_of_week, horizon_days):
            instants = _occurrence(day, start_min, end_min)
            if instants is None:
                report.skip(day, None, Reason.INVALID_SLOT)
                continue
            if instants[0] <= now:
                continue
            occurrences.append((day, *instants))

        used_by_month = {}
        if client and occurrences:
            used_by_month = usage_by_month(db, client.id, occurrences[0][1], occurrences[-1][1])

        accepted: list[tuple[datetime, datetime]] = []
        for day, start, end in occurrences:
            if find_overlapping_bookings(db, start, end) or any(
                start < a_end and a_start < end for a_start, a_end in accepted
            ):
                report.skip(day, start, Reason.CONFLICT)
                continue

            if client:
                key = month_key(start)
                if used_by_month.get(key, 0) >= client.credits_per_month:
                    report.skip(day, start, Reason.QUOTA_EXCEEDED)
                    continue
                used_by_month[key] = used_by_month.get(key, 0) + 1

            accepted.append((start, end))

        if client:
            rows = [
                DBBooking(
                    client_id=client.id,
                    start_at=to_db(start),
                    end_at=to_db(end),
                    status=CONFIRMED,
                    mode=mode,
                    reschedule_reason=_tagged(RECURRING_HOLD_TAG, note),
                )
                for start, end in accepted
            ]
        else:
            rows = [
                DBBlock(
                    start_at=to_db(start),
                    end_at=to_db(end),
                    reason=_tagged(RECURRING_HOLD_TAG, note),
                )
                for start, end in accepted
            ]
        db.add_all(rows)
        db.commit()
        report.created = len(rows)

    logger.info(
        f"Materialized weekday {day_of_week} {start_time}-{end_time} "
        f"(client={client_id}): created={report.created} skipped={report.skipped}"
    )
    return Ok(report)


# ── Lookups ──────────────────────────────────────────────────────────────


def get_upcoming_booking_for_client(
    db: Session,
    client_id: int,
    now: datetime | None = None,
) -> DBBooking | None:
    return (
        db.query(DBBooking)
        .filter(
            DBBooking.client_id == client_id,
            DBBooking.status != CANCELLED,
            DBBooking.start_at >= to_db(_now(now)),
        )
        .order_by(DBBooking.start_at)
        .first()
    )


def list_confirmed_upcoming(db: Session, now: datetime | None = None) -> list[DBBooking]:
    """Confirmed bookings from now on, for the calendar feed."""
    return (
        db.query(DBBooking)
        .options(joinedload(DBBooking.client))
        .filter(DBBooking.status == CONFIRMED, DBBooking.start_at >= to_db(_now(now)))
        .order_by(DBBooking.start_at)
        .all()
    )


def list_bookings(
    db: Session,
    client_id: int | None = None,
    status: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> list[DBBooking]:
    """Admin listing, newest slot first."""
    query = db.query(DBBooking).options(joinedload(DBBooking.client))
    if client_id is not None:
        query = query.filter(DBBooking.client_id == client_id)
    if status:
        query = query.filter(DBBooking.status == status)
    if date_from:
        query = query.filter(DBBooking.start_at >= to_db(local_to_utc(date_from, 0)))
    if date_to:
        query = query.filter(
            DBBooking.start_at < to_db(local_to_utc(date_to + timedelta(days=1), 0))
        )
    return query.order_by(DBBooking.start_at.desc()).all()
