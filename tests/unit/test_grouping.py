"""
Unit tests for the booking grouping engine (src/bookings/grouping.py).
"""

from datetime import date, datetime

import pytest

from src.bookings.grouping import (
    UNKNOWN_DATE_KEY,
    date_key,
    group_booking_sections,
    group_bookings,
    split_upcoming_past,
)
from src.domain.booking import Booking, BookingStatus


def make_booking(booking_id, preferred_date, status="pending", **kwargs):
    return Booking(id=booking_id, preferred_date=preferred_date, status=status, **kwargs)


class TestDateKey:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("2024-05-01", "2024-05-01"),
            ("2024-05-01T00:00:00.000Z", "2024-05-01"),
            ("2024-05-01T23:30:00+10:00", "2024-05-01"),
            ("2024-05-01 09:00", "2024-05-01"),
            (" 2024-05-01", "2024-05-01"),
            ("2024-05-01+10:00", "2024-05-01"),
            ("2024-05-01-05:00", "2024-05-01"),
            ("2024-05-01Z", "2024-05-01"),
            (date(2024, 5, 1), "2024-05-01"),
            (datetime(2024, 5, 1, 22, 0), "2024-05-01"),
        ],
    )
    def test_valid_values(self, value, expected):
        assert date_key(value) == expected

    @pytest.mark.parametrize(
        "value", ["", None, "soon", "2024-13-01", "2024-02-30", "20240501", "2024-05-011", 20240501]
    )
    def test_invalid_values(self, value):
        assert date_key(value) is None


class TestGroupBookings:
    def test_partition_preserves_every_booking_once(self):
        bookings = [
            make_booking("a", "2024-05-02"),
            make_booking("b", "2024-05-01"),
            make_booking("c", "2024-05-02T10:00:00Z"),
            make_booking("d", ""),
        ]

        groups = group_bookings(bookings)
        ids = [b.id for g in groups for b in g.bookings]

        assert sorted(ids) == ["a", "b", "c", "d"]
        assert len(ids) == len(set(ids))

    def test_groups_ascending_with_unknown_last(self):
        bookings = [
            make_booking("x", "not a date"),
            make_booking("a", "2024-05-03"),
            make_booking("b", "2024-05-01"),
        ]

        keys = [g.date_key for g in group_bookings(bookings)]
        assert keys == ["2024-05-01", "2024-05-03", UNKNOWN_DATE_KEY]

    def test_groups_sorted_chronologically_regardless_of_input_order(self):
        bookings = [
            make_booking("a", "2024-05-01"),
            make_booking("c", "2024-05-03"),
            make_booking("b", "2024-05-02"),
        ]

        keys = [g.date_key for g in group_bookings(bookings)]
        assert keys == ["2024-05-01", "2024-05-02", "2024-05-03"]

    def test_groups_descending_keep_unknown_last(self):
        bookings = [
            make_booking("x", None),
            make_booking("a", "2024-05-01"),
            make_booking("b", "2024-05-03"),
        ]

        keys = [g.date_key for g in group_bookings(bookings, descending=True)]
        assert keys == ["2024-05-03", "2024-05-01", UNKNOWN_DATE_KEY]

    def test_group_keeps_input_order_within_day(self):
        bookings = [
            make_booking("late", "2024-05-01", start_time="18:00"),
            make_booking("early", "2024-05-01", start_time="08:00"),
        ]

        (group,) = group_bookings(bookings)
        assert [b.id for b in group.bookings] == ["late", "early"]

    def test_status_counts(self):
        bookings = [
            make_booking("a", "2024-05-01", "pending"),
            make_booking("b", "2024-05-01", "pending"),
            make_booking("c", "2024-05-01", "confirmed"),
            make_booking("d", "2024-05-01", "cancelled"),
            make_booking("e", "2024-05-01", "on-hold"),
        ]

        (group,) = group_bookings(bookings)
        assert group.size == 5
        assert group.pending_count == 2
        assert group.confirmed_count == 1
        assert group.completed_count == 0
        assert group.cancelled_count == 1
        assert group.other_count == 1
        assert sum(group.status_counts.values()) == group.size

    def test_missing_status_counts_as_other_not_pending(self):
        bookings = [
            Booking.from_dict({"id": "a", "preferredDate": "2030-05-01"}),
            make_booking("b", "2030-05-01", "pending"),
        ]

        (group,) = group_bookings(bookings)
        assert group.pending_count == 1
        assert group.other_count == 1
        assert sum(group.status_counts.values()) == group.size

    def test_enum_status_counts_under_its_value(self):
        (group,) = group_bookings([make_booking("a", "2030-05-01", BookingStatus.PENDING)])

        assert group.status_counts == {"pending": 1}
        assert group.pending_count == 1
        assert group.other_count == 0

    def test_empty_input(self):
        assert group_bookings([]) == []

    def test_unknown_group_flag(self):
        (group,) = group_bookings([make_booking("a", "")])
        assert group.is_unknown


class TestSections:
    TODAY = date(2024, 5, 10)

    def test_today_counts_as_upcoming(self):
        upcoming, past = split_upcoming_past(
            [make_booking("today", "2024-05-10"), make_booking("yesterday", "2024-05-09")],
            self.TODAY,
        )

        assert [b.id for b in upcoming] == ["today"]
        assert [b.id for b in past] == ["yesterday"]

    def test_unknown_dates_are_upcoming(self):
        upcoming, past = split_upcoming_past([make_booking("x", "")], self.TODAY)
        assert [b.id for b in upcoming] == ["x"]
        assert past == []

    def test_sections_ordering(self):
        bookings = [
            make_booking("p1", "2024-04-01"),
            make_booking("u2", "2024-06-01"),
            make_booking("p2", "2024-05-01"),
            make_booking("u1", "2024-05-20"),
            make_booking("unk", "TBC"),
        ]

        upcoming, past = group_booking_sections(bookings, self.TODAY)

        assert [g.date_key for g in upcoming] == ["2024-05-20", "2024-06-01", UNKNOWN_DATE_KEY]
        assert [g.date_key for g in past] == ["2024-05-01", "2024-04-01"]
