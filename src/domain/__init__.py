"""Domain models - core business entities."""

from .booking import Booking, BookingStatus
from .stats import BookingStats

__all__ = ["Booking", "BookingStatus", "BookingStats"]
