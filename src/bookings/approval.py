"""
Booking approval: the guarded pending -> confirmed transition.

The store is the single source of truth. A successful approval is followed by
a refresh (re-read), and a failed one leaves the caller's booking untouched.
No local optimistic state is kept in either case.

Known limitation: there is no version check, so two operators approving the
same booking concurrently resolve last-write-wins at the store. The in-flight
guard is per BookingApprovalService instance, so it only catches a repeat
approve for the same booking while one is still running on that instance
(for example from a notifier or refresh callback). The Lambda builds a new
service per request, so duplicate HTTP POSTs are not blocked by it; the
second one normally finds the booking confirmed and is skipped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Set

from src.database.base import RecordStore
from src.database.exceptions import RecordStoreError
from src.domain.booking import Booking, BookingStatus
from src.notifications.notifier import Notifier
from src.utils.logger import get_logger

logger = get_logger(__name__)

BOOKINGS_COLLECTION = "bookings"
APPROVED_MESSAGE = "Booking approved successfully"
FAILED_MESSAGE = "Error approving booking"
NOT_FOUND_MESSAGE = "Booking not found"


class ApprovalOutcome(str, Enum):
    APPROVED = "approved"
    SKIPPED = "skipped"  # not pending; the action is not offered
    IN_FLIGHT = "in_flight"  # an approval for this booking is already running
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ApprovalResult:
    """
    Outcome of one approve call.

    `booking` is the store's record after approval (APPROVED), the record as
    read (SKIPPED / IN_FLIGHT / FAILED), or None (NOT_FOUND).
    """

    booking_id: str
    outcome: ApprovalOutcome
    booking: Optional[Booking] = None
    error: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.outcome == ApprovalOutcome.APPROVED


def can_approve(booking: Optional[Booking]) -> bool:
    """The approve action is offered only for pending bookings."""
    return booking is not None and booking.status == BookingStatus.PENDING.value


class BookingApprovalService:
    """
    Runs approvals against a record store.

    Attributes:
        store: Record store holding the bookings collection
        notifier: Receives success/error notifications
        refresh: Called after a successful approval to re-read the list
    """

    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        refresh: Optional[Callable[[], Any]] = None,
        collection: str = BOOKINGS_COLLECTION,
    ):
        self.store = store
        self.notifier = notifier
        self.refresh = refresh
        self.collection = collection
        self._in_flight: Set[str] = set()

    def is_in_flight(self, booking_id: str) -> bool:
        return booking_id in self._in_flight

    def approve(self, booking: Booking) -> ApprovalResult:
        """
        Approve a pending booking.

        Non-pending bookings and bookings already being approved are no-ops
        without a store call or notification.
        """
        if not can_approve(booking):
            logger.debug(
                "Approve skipped for non-pending booking",
                operation="approve_booking",
                context={"booking_id": booking.id, "status": booking.status},
            )
            return ApprovalResult(booking.id, ApprovalOutcome.SKIPPED, booking)

        if booking.id in self._in_flight:
            logger.warning(
                "Duplicate approve ignored while request is outstanding",
                operation="approve_booking",
                context={"booking_id": booking.id},
            )
            return ApprovalResult(booking.id, ApprovalOutcome.IN_FLIGHT, booking)

        context = {"booking_id": booking.id, "preferred_date": booking.preferred_date}
        self._in_flight.add(booking.id)
        try:
            record = self.store.update(
                self.collection, booking.id, {"status": BookingStatus.CONFIRMED.value}
            )
        except RecordStoreError as e:
            logger.error(
                "Booking approval failed",
                operation="approve_booking",
                context=context,
                error=str(e),
            )
            self.notifier.error(FAILED_MESSAGE, {**context, "error": str(e)})
            return ApprovalResult(booking.id, ApprovalOutcome.FAILED, booking, error=str(e))
        finally:
            self._in_flight.discard(booking.id)

        approved = Booking.from_dict(record) if record else booking
        logger.info("Booking approved", operation="approve_booking", context=context)
        self.notifier.success(APPROVED_MESSAGE, {**context, "member_email": approved.member_email})

        if self.refresh is not None:
            self.refresh()

        return ApprovalResult(booking.id, ApprovalOutcome.APPROVED, approved)

    def approve_by_id(self, booking_id: str) -> ApprovalResult:
        """
        Read the booking from the store, then approve it.

        A failed read is reported like a failed approval.
        """
        try:
            record = self.store.get_one(self.collection, booking_id)
        except RecordStoreError as e:
            logger.error(
                "Could not read booking for approval",
                operation="approve_booking",
                context={"booking_id": booking_id},
                error=str(e),
            )
            self.notifier.error(FAILED_MESSAGE, {"booking_id": booking_id, "error": str(e)})
            return ApprovalResult(booking_id, ApprovalOutcome.FAILED, error=str(e))

        if record is None:
            self.notifier.error(NOT_FOUND_MESSAGE, {"booking_id": booking_id})
            return ApprovalResult(booking_id, ApprovalOutcome.NOT_FOUND)

        return self.approve(Booking.from_dict(record))
