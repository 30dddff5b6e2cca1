# tests/test_timezones.py
"""
Tests for working-zone time helpers.
"""

from datetime import date, datetime, timedelta, timezone

from app.services.slots.timezones import (
    as_utc,
    format_slot_both_zones,
    local_to_utc,
    month_bounds_utc,
    parse_time,
    slot_minutes,
    to_db,
)

from conftest import MONDAY, at


class TestParseTime:

    def test_valid(self):
        assert parse_time("09:00") == 540
        assert parse_time("23:30") == 1410
        assert parse_time("24:00") == 1440

    def test_invalid(self):
        for value in (None, "", "ab:cd", "25:00", "10:75", "24:30"):
            assert parse_time(value) is None, f"{value!r} should not parse"


class TestConversions:

    def test_brussels_winter_offset(self):
        assert at(MONDAY, "09:00") == datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)

    def test_brussels_summer_offset(self):
        assert at(date(2030, 7, 1), "09:00") == datetime(2030, 7, 1, 7, 0, tzinfo=timezone.utc)

    def test_minute_1440_is_next_midnight(self):
        assert local_to_utc(MONDAY, 1440) == local_to_utc(MONDAY + timedelta(days=1), 0)

    def test_naive_is_utc(self):
        naive = datetime(2030, 1, 7, 8, 0)
        assert as_utc(naive).tzinfo == timezone.utc
        assert to_db(as_utc(naive)) == naive


class TestSlotMinutes:

    def test_regular_slot(self):
        start = at(MONDAY, "09:00")
        minutes = slot_minutes(start, start + timedelta(hours=1))
        assert minutes.day == MONDAY
        assert (minutes.start, minutes.end) == (540, 600)
        assert minutes.weekday == 1

    def test_crossing_midnight(self):
        start = at(MONDAY, "23:30")
        assert slot_minutes(start, start + timedelta(hours=1)) is None

    def test_dst_spring_forward_slot_is_rejected(self):
        # 2030-03-31: 02:00 → 03:00 in Brussels
        start = datetime(2030, 3, 31, 0, 30, tzinfo=timezone.utc)  # 01:30 local
        assert slot_minutes(start, start + timedelta(hours=1)) is None

    def test_dst_fall_back_slot_is_rejected(self):
        # 2030-10-27: 03:00 → 02:00 in Brussels
        start = datetime(2030, 10, 27, 0, 30, tzinfo=timezone.utc)  # 02:30 CEST
        assert slot_minutes(start, start + timedelta(hours=1)) is None


class TestMonthBounds:

    def test_month_in_working_zone(self):
        # 2030-01-31 23:30 UTC is already February in Brussels
        start, end = month_bounds_utc(datetime(2030, 1, 31, 23, 30, tzinfo=timezone.utc))
        assert start == datetime(2030, 1, 31, 23, 0, tzinfo=timezone.utc)
        assert end == datetime(2030, 2, 28, 23, 0, tzinfo=timezone.utc)

    def test_december_rolls_over(self):
        start, end = month_bounds_utc(datetime(2030, 12, 15, tzinfo=timezone.utc))
        assert start == datetime(2030, 11, 30, 23, 0, tzinfo=timezone.utc)
        assert end == datetime(2030, 12, 31, 23, 0, tzinfo=timezone.utc)


def test_display_in_both_zones():
    brussels, secondary = format_slot_both_zones(at(MONDAY, "15:00"))
    assert brussels == "15:00"
    assert secondary == "09:00"
