"""
Booking grouping engine.

Partitions a flat booking list into calendar-day buckets with per-bucket
status counts. Pure functions only; no I/O and no rendering concerns.

Date keys come from the calendar date *encoded in* `preferredDate`. A value
such as "2024-05-01T23:30:00+10:00" groups under 2024-05-01 regardless of
the offset or the server's timezone. Values without a valid leading
YYYY-MM-DD fall into a single "unknown" bucket that sorts last.
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from src.domain.booking import Booking, BookingStatus

UNKNOWN_DATE_KEY = "unknown"
# Count key for bookings stored without a status
MISSING_STATUS_KEY = "unknown"

_DATE_PREFIX = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})(?:$|[T\sZ+-])")


def date_key(preferred_date: Any) -> Optional[str]:
    """
    Normalize a preferred date to a "YYYY-MM-DD" key.

    Returns:
        The key, or None when the value is missing or not a real date
    """
    if isinstance(preferred_date, datetime):
        return preferred_date.date().isoformat()
    if isinstance(preferred_date, date):
        return preferred_date.isoformat()
    if not isinstance(preferred_date, str):
        return None

    match = _DATE_PREFIX.match(preferred_date)
    if not match:
        return None

    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def group_key(booking: Booking) -> str:
    """Date key for a booking, falling back to UNKNOWN_DATE_KEY."""
    return date_key(booking.preferred_date) or UNKNOWN_DATE_KEY


@dataclass
class BookingGroup:
    """
    Bookings sharing one calendar day, in their original relative order.
    """

    date_key: str
    bookings: List[Booking] = field(default_factory=list)
    status_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def is_unknown(self) -> bool:
        return self.date_key == UNKNOWN_DATE_KEY

    @property
    def size(self) -> int:
        return len(self.bookings)

    @property
    def pending_count(self) -> int:
        return self.status_counts.get(BookingStatus.PENDING.value, 0)

    @property
    def confirmed_count(self) -> int:
        return self.status_counts.get(BookingStatus.CONFIRMED.value, 0)

    @property
    def completed_count(self) -> int:
        return self.status_counts.get(BookingStatus.COMPLETED.value, 0)

    @property
    def cancelled_count(self) -> int:
        return self.status_counts.get(BookingStatus.CANCELLED.value, 0)

    @property
    def other_count(self) -> int:
        """Bookings whose status is outside the known lifecycle."""
        known = {status.value for status in BookingStatus}
        return sum(count for status, count in self.status_counts.items() if status not in known)


def _count_statuses(bookings: Sequence[Booking]) -> Dict[str, int]:
    return dict(Counter(booking.status or MISSING_STATUS_KEY for booking in bookings))


def group_bookings(bookings: Iterable[Booking], descending: bool = False) -> List[BookingGroup]:
    """
    Group bookings by calendar day.

    Args:
        bookings: Bookings in any order
        descending: Order valid-date groups newest first

    Returns:
        Groups ordered by date key (ISO order == chronological order), with
        the unknown-date group, if any, always last.
    """
    buckets: Dict[str, List[Booking]] = {}
    for booking in bookings:
        buckets.setdefault(group_key(booking), []).append(booking)

    valid_keys = sorted((k for k in buckets if k != UNKNOWN_DATE_KEY), reverse=descending)
    ordered_keys = valid_keys + ([UNKNOWN_DATE_KEY] if UNKNOWN_DATE_KEY in buckets else [])

    return [
        BookingGroup(date_key=key, bookings=buckets[key], status_counts=_count_statuses(buckets[key]))
        for key in ordered_keys
    ]


def split_upcoming_past(
    bookings: Iterable[Booking], today: date
) -> Tuple[List[Booking], List[Booking]]:
    """
    Split bookings into (upcoming, past) relative to today.

    Today counts as upcoming. Bookings with an unknown date are treated as
    upcoming so they stay visible and approvable.
    """
    today_key = today.isoformat()
    upcoming: List[Booking] = []
    past: List[Booking] = []

    for booking in bookings:
        key = date_key(booking.preferred_date)
        if key is None or key >= today_key:
            upcoming.append(booking)
        else:
            past.append(booking)

    return upcoming, past


def group_booking_sections(
    bookings: Iterable[Booking], today: date
) -> Tuple[List[BookingGroup], List[BookingGroup]]:
    """
    Return (upcoming groups ascending, past groups descending).
    """
    upcoming, past = split_upcoming_past(bookings, today)
    return group_bookings(upcoming), group_bookings(past, descending=True)
