# tests/test_concurrency.py
"""
No double booking under concurrent writers.

Each thread uses its own session on a shared file-backed SQLite database.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from app.models.generated import BookingLocks, Bookings
from app.services.booking import create_booking, locking, reschedule_booking
from app.services.results import Reason

from conftest import MONDAY, NOW, add_client, add_rule, make_session_factory, slot

WORKERS = 8


@pytest.fixture
def file_factory(tmp_path):
    engine, factory = make_session_factory(f"sqlite:///{tmp_path / 'booking.db'}")
    yield factory
    engine.dispose()


def _run_concurrently(factory, fn, count):
    barrier = Barrier(count)

    def worker(i):
        session = factory()
        try:
            barrier.wait()
            return fn(session, i)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(worker, range(count)))


class TestNoDoubleBooking:

    def test_concurrent_creates_same_slot(self, file_factory, schedule, grid):
        with file_factory() as db:
            add_rule(db, 1, "09:00", "11:00")
            client_ids = [add_client(db, name=f"C{i}").id for i in range(WORKERS)]

        def book(session, i):
            return create_booking(
                session, client_ids[i], *slot(MONDAY, "09:00"), schedule, grid, now=NOW,
            )

        results = _run_concurrently(file_factory, book, WORKERS)

        assert sum(1 for r in results if r.ok) == 1
        assert {r.reason for r in results if not r.ok} == {Reason.CONFLICT}
        with file_factory() as db:
            assert db.query(Bookings).count() == 1

    def test_concurrent_reschedules_into_same_slot(self, file_factory, schedule, grid):
        with file_factory() as db:
            add_rule(db, 1, "09:00", "12:00")
            client = add_client(db, credits=10)
            first = create_booking(db, client.id, *slot(MONDAY, "09:00"), schedule, grid, now=NOW)
            second = create_booking(db, client.id, *slot(MONDAY, "10:00"), schedule, grid, now=NOW)
            booking_ids = [first.value.id, second.value.id]

        def move(session, i):
            return reschedule_booking(
                session, booking_ids[i], *slot(MONDAY, "11:00"), schedule, grid, now=NOW,
            )

        results = _run_concurrently(file_factory, move, 2)

        assert sum(1 for r in results if r.ok) == 1
        with file_factory() as db:
            starts = [b.start_at for b in db.query(Bookings).all()]
            assert len(starts) == len(set(starts))


class TestLockRow:
    """
    Exercise the SELECT ... FOR UPDATE path on SQLite, whose compiler drops
    the FOR UPDATE clause. Cross-process blocking itself needs PostgreSQL or MySQL.
    """

    @pytest.fixture(autouse=True)
    def row_locks_on_sqlite(self, monkeypatch):
        monkeypatch.setattr(locking, "ROW_LOCK_DIALECTS", {"sqlite"})

    def test_concurrent_creates_with_row_lock(self, file_factory, schedule, grid):
        with file_factory() as db:
            add_rule(db, 1, "09:00", "11:00")
            client_ids = [add_client(db, name=f"C{i}").id for i in range(WORKERS)]

        def book(session, i):
            return create_booking(
                session, client_ids[i], *slot(MONDAY, "09:00"), schedule, grid, now=NOW,
            )

        results = _run_concurrently(file_factory, book, WORKERS)

        assert sum(1 for r in results if r.ok) == 1
        assert {r.reason for r in results if not r.ok} == {Reason.CONFLICT}

    def test_missing_lock_row_is_recreated(self, db, schedule, grid):
        db.query(BookingLocks).delete()
        db.commit()
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)

        result = create_booking(db, client.id, *slot(MONDAY, "09:00"), schedule, grid, now=NOW)

        assert result.ok
        assert db.get(BookingLocks, locking.LOCK_ROW_ID) is not None
