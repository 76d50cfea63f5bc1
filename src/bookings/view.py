"""
Presentation layer for the grouped booking list.

View models are plain dataclasses built from the grouping output; the HTML
page is a jinja2 rendering of the same structure.
"""

import os
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

import jinja2

from src.auth.permissions import Capability
from src.database.base import SORT_ASC, ListParams, RecordStore
from src.database.exceptions import RecordStoreError
from src.domain.booking import Booking, BookingStatus
from src.utils.logger import get_logger

from .approval import BOOKINGS_COLLECTION, can_approve
from .formatting import (
    PLACEHOLDER,
    display_value,
    format_amount,
    format_date_header,
    format_time_12h,
    short_service_name,
)
from .grouping import BookingGroup, group_booking_sections

logger = get_logger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
TEMPLATE_NAME = "booking_list.html.j2"

STATUS_COLORS = {
    BookingStatus.PENDING.value: "#ff9800",
    BookingStatus.CONFIRMED.value: "#2196f3",
    BookingStatus.COMPLETED.value: "#4caf50",
    BookingStatus.CANCELLED.value: "#f44336",
}
DEFAULT_STATUS_COLOR = "#9e9e9e"

UPCOMING_HEADER_COLOR = "#1976d2"
PAST_HEADER_COLOR = "#757575"

LOAD_ERROR_MESSAGE = "Error loading bookings"
LIST_PAGE_SIZE = 100


@dataclass
class StatusBadge:
    status: str
    count: int
    color: str

    @property
    def label(self) -> str:
        return f"{self.count} {self.status}"


@dataclass
class DateCell:
    """Merged date cell spanning every row of its group."""

    header: str
    rowspan: int
    badges: List[StatusBadge] = field(default_factory=list)


@dataclass
class BookingRow:
    id: str
    status: str
    status_label: str
    status_color: str
    service: str
    time: str
    duration: str
    people: str
    email: str
    total: str
    show_approve: bool = False


@dataclass
class GroupView:
    date_key: str
    date_cell: DateCell
    rows: List[BookingRow] = field(default_factory=list)


@dataclass
class SectionView:
    title: str
    header_color: str
    empty_message: str
    groups: List[GroupView] = field(default_factory=list)
    show_approve: bool = False

    @property
    def count(self) -> int:
        return sum(len(group.rows) for group in self.groups)


@dataclass
class BookingListView:
    upcoming: SectionView
    past: SectionView

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["upcoming"]["count"] = self.upcoming.count
        data["past"]["count"] = self.past.count
        return data


def status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR)


def _badges(group: BookingGroup) -> List[StatusBadge]:
    """Badges for the non-zero status counts, lifecycle statuses first."""
    badges = []
    for status in BookingStatus:
        count = group.status_counts.get(status.value, 0)
        if count:
            badges.append(StatusBadge(status.value, count, status_color(status.value)))
    for status, count in sorted(group.status_counts.items()):
        if status not in STATUS_COLORS and count:
            badges.append(StatusBadge(status, count, DEFAULT_STATUS_COLOR))
    return badges


def _row(booking: Booking, approvable: bool) -> BookingRow:
    status = booking.status or ""
    return BookingRow(
        id=booking.id,
        status=status,
        status_label=status.upper() or PLACEHOLDER,
        status_color=status_color(status),
        service=short_service_name(booking.service_name),
        time=format_time_12h(booking.start_time),
        duration=display_value(booking.service_duration),
        people=display_value(booking.number_of_people),
        email=display_value(booking.member_email),
        total=format_amount(booking.total_amount),
        show_approve=approvable and can_approve(booking),
    )


def _section(
    title: str,
    header_color: str,
    empty_message: str,
    groups: Iterable[BookingGroup],
    approvable: bool,
) -> SectionView:
    group_views = [
        GroupView(
            date_key=group.date_key,
            date_cell=DateCell(
                header=format_date_header(group.date_key),
                rowspan=group.size,
                badges=_badges(group),
            ),
            rows=[_row(booking, approvable) for booking in group.bookings],
        )
        for group in groups
    ]
    return SectionView(
        title=title,
        header_color=header_color,
        empty_message=empty_message,
        groups=group_views,
        show_approve=approvable,
    )


def build_booking_list_view(
    bookings: Iterable[Booking],
    today: date,
    capabilities: FrozenSet[Capability] = frozenset(),
) -> BookingListView:
    """
    Build the two-section booking list.

    Args:
        bookings: Bookings as read from the store
        today: Calendar day splitting upcoming from past
        capabilities: Caller's capabilities; the approve column needs
            APPROVE_BOOKING and is only offered in the upcoming section

    Returns:
        BookingListView with upcoming groups ascending and past groups
        descending
    """
    upcoming, past = group_booking_sections(bookings, today)
    can_approve_any = Capability.APPROVE_BOOKING in capabilities
    return BookingListView(
        upcoming=_section(
            "Upcoming Bookings", UPCOMING_HEADER_COLOR, "No upcoming bookings", upcoming,
            can_approve_any,
        ),
        past=_section("Past Bookings", PAST_HEADER_COLOR, "No past bookings", past, False),
    )


_environment: Optional[jinja2.Environment] = None


def _get_environment() -> jinja2.Environment:
    global _environment
    if _environment is None:
        _environment = jinja2.Environment(
            loader=jinja2.FileSystemLoader(TEMPLATE_DIR),
            autoescape=jinja2.select_autoescape(["html", "j2"], default_for_string=True),
            trim_blocks=True,
            lstrip_blocks=True,
        )
    return _environment


def render_booking_list_html(
    view: Optional[BookingListView], error: Optional[str] = None
) -> str:
    """Render the booking list page; an error replaces the tables."""
    template = _get_environment().get_template(TEMPLATE_NAME)
    return template.render(view=view, error=error)


class BookingListController:
    """
    Loads bookings from the store and keeps the current view.

    Attributes:
        view: Last successfully built view, None after a failed load
        error: Inline error message from the last load, if it failed
    """

    def __init__(
        self,
        store: RecordStore,
        today: Callable[[], date],
        capabilities: FrozenSet[Capability] = frozenset(),
        collection: str = BOOKINGS_COLLECTION,
    ):
        self.store = store
        self.today = today
        self.capabilities = capabilities
        self.collection = collection
        self.view: Optional[BookingListView] = None
        self.error: Optional[str] = None
        self.total = 0

    def load(self) -> Optional[BookingListView]:
        """Fetch the list and rebuild the view. Failures are not retried."""
        params = ListParams(sort_field="preferredDate", sort_order=SORT_ASC, per_page=LIST_PAGE_SIZE)
        try:
            result = self.store.list(self.collection, params)
        except RecordStoreError as e:
            logger.error(
                "Failed to load bookings",
                operation="load_bookings",
                context={"collection": self.collection},
                error=str(e),
            )
            self.view = None
            self.error = f"{LOAD_ERROR_MESSAGE}: {e}"
            return None

        bookings = [Booking.from_dict(record) for record in result.data]
        self.total = result.total
        self.view = build_booking_list_view(bookings, self.today(), self.capabilities)
        self.error = None
        return self.view

    def render(self) -> str:
        return render_booking_list_html(self.view, self.error)
