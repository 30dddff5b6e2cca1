# tests/conftest.py
"""
Shared fixtures: in-memory SQLite session, captured events, factories.

Reference week: Monday 2030-01-07. Europe/Brussels is UTC+1 in January,
so 09:00 Brussels = 08:00 UTC.
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models.generated import (
    AvailabilityOverrides,
    AvailabilityRules,
    Base,
    Blocks,
    BookingLocks,
    Bookings,
    Clients,
    RecurringHolds,
)
from app.services import events
from app.services.slots.config import ScheduleSettings, SlotGridConfig
from app.services.slots.timezones import local_to_utc, parse_time, to_db

MONDAY = date(2030, 1, 7)
NOW = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)


# ── Time helpers ─────────────────────────────────────────────────────────


def at(day: date, hhmm: str) -> datetime:
    """Brussels wall clock → aware UTC datetime."""
    return local_to_utc(day, parse_time(hhmm))


def slot(day: date, hhmm: str) -> tuple[datetime, datetime]:
    start = at(day, hhmm)
    return start, start + timedelta(hours=1)


# ── Database ─────────────────────────────────────────────────────────────


def make_session_factory(url: str = "sqlite://"):
    if url == "sqlite://":
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with factory() as session:
        session.add(BookingLocks(id=1))
        session.commit()
    return engine, factory


@pytest.fixture
def session_factory():
    engine, factory = make_session_factory()
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ── Events ───────────────────────────────────────────────────────────────


class RecordingRedis:
    """Stands in for the Redis client; keeps pushed events in memory."""

    def __init__(self):
        self.pushed: list[tuple[str, dict]] = []
        self.fail = False

    def rpush(self, key, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.pushed.append((key, json.loads(value)))
        return len(self.pushed)

    def ping(self):
        return True

    def templates(self) -> list[str]:
        return [event["template"] for _, event in self.pushed]


@pytest.fixture(autouse=True)
def sent_events(monkeypatch):
    recorder = RecordingRedis()
    monkeypatch.setattr(events, "redis_client", recorder)
    return recorder


# ── Config ───────────────────────────────────────────────────────────────


@pytest.fixture
def grid():
    return SlotGridConfig(horizon_days=365)


@pytest.fixture
def schedule():
    return ScheduleSettings()


# ── Factories ────────────────────────────────────────────────────────────


def add_client(db, name="Alice", email=None, credits=4, active=True) -> Clients:
    client = Clients(
        name=name,
        email=email or f"{name.lower()}@example.com",
        credits_per_month=credits,
        is_active=1 if active else 0,
    )
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


def add_rule(db, day_of_week: int, start_time: str, end_time: str) -> AvailabilityRules:
    rule = AvailabilityRules(day_of_week=day_of_week, start_time=start_time, end_time=end_time)
    db.add(rule)
    db.commit()
    return rule


def add_override(db, day: date, start_time: str, end_time: str, kind: str) -> AvailabilityOverrides:
    override = AvailabilityOverrides(
        date=day, start_time=start_time, end_time=end_time, override_type=kind,
    )
    db.add(override)
    db.commit()
    return override


def add_hold(db, day_of_week: int, start_time: str, end_time: str, client_id=None) -> RecurringHolds:
    hold = RecurringHolds(
        day_of_week=day_of_week, start_time=start_time, end_time=end_time, client_id=client_id,
    )
    db.add(hold)
    db.commit()
    return hold


def add_block(db, start: datetime, end: datetime) -> Blocks:
    block = Blocks(start_at=to_db(start), end_at=to_db(end))
    db.add(block)
    db.commit()
    return block


def add_booking(db, client: Clients, start: datetime, end: datetime | None = None,
                status: str = "CONFIRMED") -> Bookings:
    booking = Bookings(
        client_id=client.id,
        start_at=to_db(start),
        end_at=to_db(end or start + timedelta(hours=1)),
        status=status,
        mode="VISIO",
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
