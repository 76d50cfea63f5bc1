"""
Display formatting helpers for booking rows and date headers.
"""

import re
from datetime import date
from typing import Any, NamedTuple, Optional

from .grouping import UNKNOWN_DATE_KEY, date_key

PLACEHOLDER = "-"

_TIME_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")


class TimeDisplay(NamedTuple):
    """12-hour clock components."""

    hour: int
    minute: str
    period: str

    def __str__(self) -> str:
        return f"{self.hour}:{self.minute} {self.period}"


def parse_time_12h(value: Optional[str]) -> Optional[TimeDisplay]:
    """
    Convert a 24-hour "HH:MM" string to 12-hour components.

    Hour 0 is 12 AM, hour 12 is 12 PM, hours above 12 are hour-12 PM and
    every other hour is AM.

    Returns:
        TimeDisplay, or None if the value is empty or not HH:MM
    """
    if not value:
        return None

    match = _TIME_PATTERN.match(str(value))
    if not match:
        return None

    hour = int(match.group(1))
    minute = match.group(2)
    if hour > 23 or int(minute) > 59:
        return None

    if hour == 0:
        return TimeDisplay(12, minute, "AM")
    if hour == 12:
        return TimeDisplay(12, minute, "PM")
    if hour > 12:
        return TimeDisplay(hour - 12, minute, "PM")
    return TimeDisplay(hour, minute, "AM")


def format_time_12h(value: Optional[str], placeholder: str = PLACEHOLDER) -> str:
    """
    Format a 24-hour time for display.

    "00:00" -> "12:00 AM", "13:30" -> "1:30 PM", empty -> placeholder.
    Values already carrying AM/PM, or that cannot be parsed, are returned
    unchanged.
    """
    if value is None or str(value).strip() == "":
        return placeholder

    text = str(value)
    if "am" in text.lower() or "pm" in text.lower():
        return text

    parsed = parse_time_12h(text)
    return str(parsed) if parsed else text


def format_time_range(start_time: Optional[str], end_time: Optional[str]) -> str:
    """Format "10:00"/"16:00" as "10:00 AM to 4:00 PM"; empty string when both are missing."""
    if not start_time and not end_time:
        return ""
    if start_time and not end_time:
        return format_time_12h(start_time)
    if end_time and not start_time:
        return f"Until {format_time_12h(end_time)}"
    return f"{format_time_12h(start_time)} to {format_time_12h(end_time)}"


def format_date_header(key: str) -> str:
    """
    Long date header, e.g. "Wednesday, 1 May 2024".

    The unknown bucket renders as "Date unknown".
    """
    if key == UNKNOWN_DATE_KEY:
        return "Date unknown"

    normalized = date_key(key)
    if normalized is None:
        return "Date unknown"

    day = date.fromisoformat(normalized)
    return f"{day.strftime('%A')}, {day.day} {day.strftime('%B')} {day.year}"


def short_service_name(name: Optional[str]) -> str:
    """Leading part of a service name before ':' or '/', e.g. "Hall Hire: Main" -> "Hall Hire"."""
    if not name:
        return PLACEHOLDER
    head = re.split(r"[:/]", name, maxsplit=1)[0].strip()
    return head or name


def format_amount(value: Any) -> str:
    """Money with two decimals, "$150.00"; placeholder when missing."""
    if value is None or value == "":
        return PLACEHOLDER
    try:
        return f"${float(value):.2f}"
    except (TypeError, ValueError):
        return PLACEHOLDER


def display_value(value: Any) -> str:
    """Plain cell value, placeholder for missing."""
    if value is None or value == "":
        return PLACEHOLDER
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
