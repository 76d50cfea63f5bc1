"""
Timezone helpers for deciding what "today" means to the admin office.

Lambda runs in UTC while operators work in Australian local time, so the
upcoming/past split must be computed in the office timezone.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Australia/Sydney"


def now_local(tz_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None) -> datetime:
    """
    Return the current time in the given IANA timezone (timezone-aware).

    Args:
        tz_name: IANA timezone name
        now: Optional reference instant (naive values are treated as UTC)
    """
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(ZoneInfo(tz_name))


def today_local(tz_name: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None) -> date:
    """Return today's calendar date in the given timezone."""
    return now_local(tz_name, now).date()
