"""Booking list: grouping, formatting, approval workflow and presentation."""

from .approval import (
    APPROVED_MESSAGE,
    FAILED_MESSAGE,
    ApprovalOutcome,
    ApprovalResult,
    BookingApprovalService,
    can_approve,
)
from .formatting import format_date_header, format_time_12h
from .grouping import (
    UNKNOWN_DATE_KEY,
    BookingGroup,
    date_key,
    group_booking_sections,
    group_bookings,
    split_upcoming_past,
)
from .stats import inventory_stats, summarize_bookings
from .view import (
    BookingListController,
    BookingListView,
    build_booking_list_view,
    render_booking_list_html,
)

__all__ = [
    "APPROVED_MESSAGE",
    "FAILED_MESSAGE",
    "ApprovalOutcome",
    "ApprovalResult",
    "BookingApprovalService",
    "BookingGroup",
    "BookingListController",
    "BookingListView",
    "UNKNOWN_DATE_KEY",
    "build_booking_list_view",
    "can_approve",
    "date_key",
    "format_date_header",
    "format_time_12h",
    "group_booking_sections",
    "group_bookings",
    "inventory_stats",
    "render_booking_list_html",
    "split_upcoming_past",
    "summarize_bookings",
]
