# backend/app/services/booking/quota.py
"""
Monthly credit accounting.

usage = non-cancelled bookings of the client starting in the working-zone
calendar month containing the anchor. Always computed from the store.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.generated import Bookings as DBBooking, Clients as DBClient
from ..results import Ok, Reason, Result, reject
from ..slots.timezones import from_db, month_bounds_utc, month_key, to_db

CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class QuotaStatus:
    used: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit


def usage(db: Session, client_id: int, anchor: datetime) -> int:
    start, end = month_bounds_utc(anchor)
    return (
        db.query(func.count(DBBooking.id))
        .filter(
            DBBooking.client_id == client_id,
            DBBooking.status != CANCELLED,
            DBBooking.start_at >= to_db(start),
            DBBooking.start_at < to_db(end),
        )
        .scalar()
    ) or 0


def usage_by_month(
    db: Session,
    client_id: int,
    first: datetime,
    last: datetime,
) -> dict[tuple[int, int], int]:
    """Non-cancelled bookings per (year, month) for the months spanning [first, last]."""
    range_start, _ = month_bounds_utc(first)
    _, range_end = month_bounds_utc(last)
    rows = (
        db.query(DBBooking.start_at)
        .filter(
            DBBooking.client_id == client_id,
            DBBooking.status != CANCELLED,
            DBBooking.start_at >= to_db(range_start),
            DBBooking.start_at < to_db(range_end),
        )
        .all()
    )
    counts: dict[tuple[int, int], int] = {}
    for (start_at,) in rows:
        key = month_key(from_db(start_at))
        counts[key] = counts.get(key, 0) + 1
    return counts


def quota_status(
    db: Session,
    client_id: int,
    now: datetime | None = None,
) -> Result:
    client = db.get(DBClient, client_id)
    if not client:
        return reject(Reason.NOT_FOUND, f"Client {client_id} not found")
    used = usage(db, client_id, now or datetime.now(timezone.utc))
    return Ok(QuotaStatus(used=used, limit=client.credits_per_month))


def client_usage_this_month(db: Session, now: datetime | None = None) -> dict[int, int]:
    """Usage of every client with at least one booking this month."""
    start, end = month_bounds_utc(now or datetime.now(timezone.utc))
    rows = (
        db.query(DBBooking.client_id, func.count(DBBooking.id))
        .filter(
            DBBooking.status != CANCELLED,
            DBBooking.start_at >= to_db(start),
            DBBooking.start_at < to_db(end),
        )
        .group_by(DBBooking.client_id)
        .all()
    )
    return {client_id: count for client_id, count in rows}
