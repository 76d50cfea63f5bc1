"""
Unit tests for the booking list presentation layer (src/bookings/view.py).
"""

from datetime import date
from unittest.mock import Mock

import pytest

from src.auth.permissions import Role, allowed_actions
from src.bookings.view import (
    DEFAULT_STATUS_COLOR,
    PAST_HEADER_COLOR,
    UPCOMING_HEADER_COLOR,
    BookingListController,
    build_booking_list_view,
    render_booking_list_html,
)
from src.database.base import ListParams, ListResult, RecordStore
from src.database.exceptions import NetworkError
from src.domain.booking import Booking, BookingStatus

TODAY = date(2024, 5, 10)


def make_booking(booking_id, preferred_date, status="pending", **kwargs):
    return Booking(id=booking_id, preferred_date=preferred_date, status=status, **kwargs)


@pytest.fixture
def bookings():
    return [
        make_booking(
            "u1",
            "2024-05-20",
            "pending",
            start_time="13:30",
            service_name="Hall Hire: Main Hall",
            service_duration=2,
            number_of_people=40,
            member_email="sita@example.com",
            total_amount=250,
        ),
        make_booking("u2", "2024-05-20T00:00:00.000Z", "confirmed", start_time="00:00"),
        make_booking("u3", "2024-05-20", "confirmed"),
        make_booking("p1", "2024-05-01", "pending"),
        make_booking("p2", "2024-04-01", "completed"),
        make_booking("x1", "", "pending"),
    ]


class TestBuildView:
    def test_sections_and_counts(self, bookings):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(Role.MANAGER))

        assert view.upcoming.title == "Upcoming Bookings"
        assert view.upcoming.header_color == UPCOMING_HEADER_COLOR
        assert view.past.header_color == PAST_HEADER_COLOR
        assert view.upcoming.count == 4
        assert view.past.count == 2
        assert [g.date_key for g in view.past.groups] == ["2024-05-01", "2024-04-01"]

    def test_date_cell_rowspan_and_badges(self, bookings):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(Role.MANAGER))
        first = view.upcoming.groups[0]

        assert first.date_cell.header == "Monday, 20 May 2024"
        assert first.date_cell.rowspan == 3 == len(first.rows)
        assert [(b.status, b.count) for b in first.date_cell.badges] == [
            ("pending", 1),
            ("confirmed", 2),
        ]
        assert first.date_cell.badges[0].color == "#ff9800"
        assert first.date_cell.badges[1].label == "2 confirmed"

    def test_unknown_group_is_last_upcoming(self, bookings):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(Role.MANAGER))
        last = view.upcoming.groups[-1]

        assert last.date_key == "unknown"
        assert last.date_cell.header == "Date unknown"

    def test_row_formatting(self, bookings):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(Role.MANAGER))
        row = view.upcoming.groups[0].rows[0]

        assert row.status_label == "PENDING"
        assert row.status_color == "#ff9800"
        assert row.service == "Hall Hire"
        assert row.time == "1:30 PM"
        assert row.duration == "2"
        assert row.people == "40"
        assert row.email == "sita@example.com"
        assert row.total == "$250.00"
        assert view.upcoming.groups[0].rows[1].time == "12:00 AM"
        assert view.upcoming.groups[0].rows[2].time == "-"

    def test_approve_only_for_pending_upcoming_rows(self, bookings):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(Role.MANAGER))
        upcoming = {r.id: r.show_approve for g in view.upcoming.groups for r in g.rows}
        past = {r.id: r.show_approve for g in view.past.groups for r in g.rows}

        assert upcoming == {"u1": True, "u2": False, "u3": False, "x1": True}
        assert past == {"p1": False, "p2": False}
        assert view.upcoming.show_approve
        assert not view.past.show_approve

    @pytest.mark.parametrize("role", [Role.MEMBER, Role.ANONYMOUS])
    def test_no_approve_column_without_capability(self, bookings, role):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(role))

        assert not view.upcoming.show_approve
        assert not any(r.show_approve for g in view.upcoming.groups for r in g.rows)

    def test_empty_sections(self):
        view = build_booking_list_view([], TODAY)

        assert view.upcoming.groups == []
        assert view.upcoming.empty_message == "No upcoming bookings"
        assert view.past.empty_message == "No past bookings"

    def test_missing_status_is_not_approvable(self):
        booking = Booking.from_dict({"id": "a", "preferredDate": "2024-05-20"})

        view = build_booking_list_view([booking], TODAY, allowed_actions(Role.ADMIN))
        (group,) = view.upcoming.groups
        (row,) = group.rows

        assert not row.show_approve
        assert row.status_label == "-"
        assert row.status_color == DEFAULT_STATUS_COLOR
        assert [(b.status, b.count) for b in group.date_cell.badges] == [("unknown", 1)]

    def test_enum_status_renders_like_its_value(self):
        booking = make_booking("a", "2024-05-20", BookingStatus.PENDING)

        view = build_booking_list_view([booking], TODAY, allowed_actions(Role.MANAGER))
        (group,) = view.upcoming.groups
        (row,) = group.rows

        assert row.status_label == "PENDING"
        assert row.show_approve
        assert [(b.status, b.count) for b in group.date_cell.badges] == [("pending", 1)]

    def test_to_dict_includes_counts(self, bookings):
        data = build_booking_list_view(bookings, TODAY).to_dict()

        assert data["upcoming"]["count"] == 4
        assert data["past"]["count"] == 2
        assert data["upcoming"]["groups"][0]["date_cell"]["rowspan"] == 3


class TestRenderHtml:
    def test_renders_merged_date_cells_and_approve_buttons(self, bookings):
        view = build_booking_list_view(bookings, TODAY, allowed_actions(Role.ADMIN))
        html = render_booking_list_html(view)

        assert 'rowspan="3"' in html
        assert "Monday, 20 May 2024" in html
        assert "Upcoming Bookings (4)" in html
        assert html.count(">Approve</button>") == 2

    def test_escapes_record_values(self):
        view = build_booking_list_view(
            [make_booking("x", "2024-05-20", member_email="<script>alert(1)</script>")], TODAY
        )
        html = render_booking_list_html(view)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html

    def test_empty_message(self):
        html = render_booking_list_html(build_booking_list_view([], TODAY))
        assert "No upcoming bookings" in html

    def test_error_replaces_tables(self):
        html = render_booking_list_html(None, error="Error loading bookings: timeout")
        assert "Error loading bookings: timeout" in html
        assert "<table>" not in html


class TestController:
    def test_load_requests_sorted_first_page(self):
        store = Mock(spec=RecordStore)
        store.list.return_value = ListResult(
            data=[{"id": "a", "preferredDate": "2024-05-20", "status": "pending"}], total=1
        )
        controller = BookingListController(store, today=lambda: TODAY)

        view = controller.load()

        collection, params = store.list.call_args[0]
        assert collection == "bookings"
        assert isinstance(params, ListParams)
        assert params.sort_field == "preferredDate"
        assert params.sort_order == "ASC"
        assert params.per_page == 100
        assert view.upcoming.count == 1
        assert controller.error is None
        assert controller.total == 1

    def test_failure_sets_inline_error_without_stale_view(self):
        store = Mock(spec=RecordStore)
        store.list.return_value = ListResult(data=[{"id": "a", "preferredDate": "2024-05-20"}], total=1)
        controller = BookingListController(store, today=lambda: TODAY)
        controller.load()

        store.list.side_effect = NetworkError("timeout")
        assert controller.load() is None

        assert controller.view is None
        assert "timeout" in controller.error
        assert store.list.call_count == 2
        assert "timeout" in controller.render()
