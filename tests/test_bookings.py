# tests/test_bookings.py
"""
Tests for the booking transaction manager.
"""

from datetime import timedelta

from app.models.generated import Bookings
from app.services.booking import cancel_booking, create_booking, reschedule_booking
from app.services.booking.transactions import (
    ADMIN_BLOCK_TAG,
    block_date_for_client,
    cancel_blocked_date,
    get_upcoming_booking_for_client,
    list_confirmed_upcoming,
    update_booking_mode,
    update_booking_status,
)
from app.services.results import Reason
from app.services.slots import list_slots
from app.services.slots.classifier import AVAILABLE, BOOKED
from app.services.slots.timezones import from_db

from conftest import MONDAY, NOW, add_booking, add_client, add_rule, at, slot

TUESDAY = MONDAY + timedelta(days=1)


def _book(db, client, day, hhmm, schedule, grid):
    return create_booking(db, client.id, *slot(day, hhmm), schedule, grid, now=NOW)


class TestCreate:

    def test_creates_confirmed_booking(self, db, schedule, grid, sent_events):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)

        result = _book(db, client, MONDAY, "09:00", schedule, grid)

        assert result.ok
        booking = result.value
        assert booking.status == "CONFIRMED"
        assert booking.mode == "VISIO"
        assert from_db(booking.start_at) == at(MONDAY, "09:00")
        assert len(booking.manage_token) == 64
        assert sent_events.templates() == ["booking_confirmed"]

    def test_unknown_client(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        result = create_booking(db, 999, *slot(MONDAY, "09:00"), schedule, grid, now=NOW)
        assert result.reason == Reason.NOT_FOUND

    def test_inactive_client(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db, active=False)
        result = _book(db, client, MONDAY, "09:00", schedule, grid)
        assert result.reason == Reason.CLIENT_INACTIVE

    def test_rejection_leaves_no_row(self, db, schedule, grid, sent_events):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)

        result = _book(db, client, MONDAY, "12:00", schedule, grid)

        assert result.reason == Reason.OUT_OF_HOURS
        assert db.query(Bookings).count() == 0
        assert sent_events.pushed == []

    def test_notification_failure_does_not_fail_booking(self, db, schedule, grid, sent_events):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)
        sent_events.fail = True

        result = _book(db, client, MONDAY, "09:00", schedule, grid)

        assert result.ok
        assert db.query(Bookings).count() == 1


class TestQuota:

    def test_quota_gate(self, db, schedule, grid):
        """credits_per_month=1: one booking per month, then QUOTA_EXCEEDED."""
        add_rule(db, 1, "09:00", "11:00")
        add_rule(db, 2, "09:00", "11:00")
        client = add_client(db, credits=1)

        assert _book(db, client, MONDAY, "09:00", schedule, grid).ok
        second = _book(db, client, TUESDAY, "10:00", schedule, grid)

        assert second.reason == Reason.QUOTA_EXCEEDED
        assert db.query(Bookings).count() == 1

    def test_quota_is_counted_for_current_month(self, db, schedule, grid):
        """A spent January credit also refuses a slot booked for February."""
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db, credits=1)
        february = MONDAY + timedelta(days=28)

        assert _book(db, client, MONDAY, "09:00", schedule, grid).ok
        result = _book(db, client, february, "09:00", schedule, grid)

        assert result.reason == Reason.QUOTA_EXCEEDED
        assert db.query(Bookings).count() == 1

    def test_quota_resets_with_new_month(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db, credits=1)
        february = MONDAY + timedelta(days=28)
        assert _book(db, client, MONDAY, "09:00", schedule, grid).ok

        first_of_february = at(MONDAY + timedelta(days=25), "08:00")

        result = create_booking(
            db, client.id, *slot(february, "09:00"), schedule, grid, now=first_of_february,
        )

        assert result.ok

    def test_cancelled_booking_frees_credit(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db, credits=1)

        first = _book(db, client, MONDAY, "09:00", schedule, grid)
        assert cancel_booking(db, first.value.id).ok
        assert _book(db, client, MONDAY, "10:00", schedule, grid).ok


class TestCancel:

    def test_idempotent_cancel(self, db, schedule, grid, sent_events):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)
        booking_id = _book(db, client, MONDAY, "09:00", schedule, grid).value.id

        first = cancel_booking(db, booking_id, reason="sick")
        second = cancel_booking(db, booking_id)

        assert first.ok and not first.already_cancelled
        assert second.ok and second.already_cancelled
        booking = db.get(Bookings, booking_id)
        assert booking.status == "CANCELLED"
        assert booking.cancel_reason == "sick"
        assert sent_events.templates() == ["booking_confirmed", "booking_cancelled"]

    def test_cancel_frees_slot(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)
        booking_id = _book(db, client, MONDAY, "09:00", schedule, grid).value.id

        cancel_booking(db, booking_id)

        assert _book(db, add_client(db, name="Bob"), MONDAY, "09:00", schedule, grid).ok

    def test_cannot_cancel_done_or_no_show(self, db):
        client = add_client(db)
        done = add_booking(db, client, at(MONDAY, "09:00"), status="DONE")
        no_show = add_booking(db, client, at(MONDAY, "10:00"), status="NO_SHOW")

        assert cancel_booking(db, done.id).reason == Reason.INVALID_TRANSITION
        assert cancel_booking(db, no_show.id).reason == Reason.INVALID_TRANSITION

    def test_unknown_booking(self, db):
        assert cancel_booking(db, 404).reason == Reason.NOT_FOUND


class TestReschedule:

    def test_reschedule_frees_old_slot(self, db, schedule, grid, sent_events):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)
        booking_id = _book(db, client, MONDAY, "09:00", schedule, grid).value.id

        result = reschedule_booking(
            db, booking_id, *slot(MONDAY, "10:00"), schedule, grid, reason="moved", now=NOW,
        )

        assert result.ok
        assert result.value.reschedule_reason == "moved"
        statuses = {
            v.display_brussels: v.status
            for v in list_slots(db, schedule, grid, now=NOW)
            if v.start.date() == MONDAY
        }
        assert statuses == {"09:00": AVAILABLE, "10:00": BOOKED}
        assert sent_events.templates() == ["booking_confirmed", "booking_updated"]
        assert "old_start_at" in sent_events.pushed[-1][1]

    def test_reschedule_onto_itself(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)
        booking_id = _book(db, client, MONDAY, "09:00", schedule, grid).value.id

        result = reschedule_booking(db, booking_id, *slot(MONDAY, "09:00"), schedule, grid, now=NOW)

        assert result.ok
        assert result.value.reschedule_reason is None

    def test_reschedule_does_not_recheck_quota(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db, credits=1)
        booking_id = _book(db, client, MONDAY, "09:00", schedule, grid).value.id

        result = reschedule_booking(db, booking_id, *slot(MONDAY, "10:00"), schedule, grid, now=NOW)

        assert result.ok

    def test_reschedule_into_conflict(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        alice, bob = add_client(db), add_client(db, name="Bob")
        _book(db, alice, MONDAY, "09:00", schedule, grid)
        bob_booking = _book(db, bob, MONDAY, "10:00", schedule, grid).value

        result = reschedule_booking(
            db, bob_booking.id, *slot(MONDAY, "09:00"), schedule, grid, now=NOW,
        )

        assert result.reason == Reason.CONFLICT
        assert from_db(db.get(Bookings, bob_booking.id).start_at) == at(MONDAY, "10:00")

    def test_cancelled_cannot_be_rescheduled(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        client = add_client(db)
        booking_id = _book(db, client, MONDAY, "09:00", schedule, grid).value.id
        cancel_booking(db, booking_id)

        result = reschedule_booking(db, booking_id, *slot(MONDAY, "10:00"), schedule, grid, now=NOW)

        assert result.reason == Reason.INVALID_TRANSITION

    def test_no_show_is_reset_to_confirmed(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "11:00")
        booking = add_booking(db, add_client(db), at(MONDAY, "09:00"), status="NO_SHOW")

        result = reschedule_booking(db, booking.id, *slot(MONDAY, "10:00"), schedule, grid, now=NOW)

        assert result.ok
        assert result.value.status == "CONFIRMED"


class TestAdminUpdates:

    def test_status_change_and_reconfirmation(self, db, sent_events):
        booking = add_booking(db, add_client(db), at(MONDAY, "09:00"))

        assert update_booking_status(db, booking.id, "NO_SHOW").value.status == "NO_SHOW"
        assert update_booking_status(db, booking.id, "CONFIRMED").ok
        assert sent_events.templates() == ["booking_confirmed"]

    def test_status_cancelled_is_terminal(self, db):
        booking = add_booking(db, add_client(db), at(MONDAY, "09:00"))

        assert update_booking_status(db, booking.id, "CANCELLED").ok
        result = update_booking_status(db, booking.id, "CONFIRMED")

        assert result.reason == Reason.INVALID_TRANSITION

    def test_unknown_status(self, db):
        booking = add_booking(db, add_client(db), at(MONDAY, "09:00"))
        assert update_booking_status(db, booking.id, "LOST").reason == Reason.INVALID_INPUT

    def test_mode_change_notifies_once(self, db, sent_events):
        booking = add_booking(db, add_client(db), at(MONDAY, "09:00"))

        update_booking_mode(db, booking.id, "PRESENTIEL")
        update_booking_mode(db, booking.id, "PRESENTIEL")

        assert db.get(Bookings, booking.id).mode == "PRESENTIEL"
        assert sent_events.templates() == ["booking_updated"]


class TestClientBlocks:

    def test_block_and_cancel(self, db):
        client = add_client(db)

        result = block_date_for_client(db, client.id, MONDAY, "14:00", "17:30", note="travel")

        assert result.ok
        booking = result.value
        assert booking.reschedule_reason == f"{ADMIN_BLOCK_TAG} travel"
        assert from_db(booking.end_at) - from_db(booking.start_at) == timedelta(hours=3, minutes=30)
        assert cancel_blocked_date(db, booking.id).ok

    def test_block_conflicts_with_booking(self, db):
        client = add_client(db)
        add_booking(db, client, at(MONDAY, "15:00"))

        result = block_date_for_client(db, client.id, MONDAY, "14:00", "17:00")

        assert result.reason == Reason.CONFLICT

    def test_reschedule_keeps_admin_tag(self, db, schedule, grid):
        add_rule(db, 1, "09:00", "12:00")
        client = add_client(db)
        block = block_date_for_client(db, client.id, MONDAY, "09:00", "10:00", note="x").value

        moved = reschedule_booking(db, block.id, *slot(MONDAY, "11:00"), schedule, grid, now=NOW)

        assert moved.ok
        assert moved.value.reschedule_reason == f"{ADMIN_BLOCK_TAG} x"
        assert cancel_blocked_date(db, block.id).ok

    def test_only_admin_blocks_are_cancelled_here(self, db):
        booking = add_booking(db, add_client(db), at(MONDAY, "09:00"))
        assert cancel_blocked_date(db, booking.id).reason == Reason.INVALID_INPUT


class TestLookups:

    def test_upcoming_and_feed(self, db):
        client = add_client(db)
        add_booking(db, client, at(MONDAY, "09:00"), status="CANCELLED")
        later = add_booking(db, client, at(MONDAY, "15:00"))
        add_booking(db, client, at(MONDAY - timedelta(days=14), "09:00"))

        assert get_upcoming_booking_for_client(db, client.id, now=NOW).id == later.id
        assert [b.id for b in list_confirmed_upcoming(db, now=NOW)] == [later.id]
