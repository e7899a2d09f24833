"""Booking state machine."""

from enum import Enum

from app.core.exceptions import InvalidBookingStatus


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PendingRequest(str, Enum):
    """Customer request awaiting staff approval; at most one at a time."""

    NONE = "none"
    CANCELLATION = "cancellation"
    EXTENSION = "extension"


BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

ACTIVE_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS}
)

# States in which "more money arrived" can be applied
CONFIRMABLE_STATUSES = ACTIVE_STATUSES


def assert_booking_transition(current: str, target: str) -> None:
    allowed = BOOKING_TRANSITIONS.get(BookingStatus(current), set())
    if BookingStatus(target) not in allowed:
        raise InvalidBookingStatus(
            f"Invalid booking transition: {BookingStatus(current).value} → "
            f"{BookingStatus(target).value}"
        )


def is_active(status: str) -> bool:
    return BookingStatus(status) in ACTIVE_STATUSES


def is_confirmable(status: str) -> bool:
    return BookingStatus(status) in CONFIRMABLE_STATUSES


def assert_cancellable(status: str) -> None:
    """Shared guard for customer requests and direct staff cancellation."""
    if status == BookingStatus.CANCELLED:
        raise InvalidBookingStatus("Booking is already cancelled")
    if status == BookingStatus.IN_PROGRESS:
        raise InvalidBookingStatus(
            "Cannot cancel an in-progress booking. Please return the vehicle first."
        )
    if status == BookingStatus.COMPLETED:
        raise InvalidBookingStatus("Cannot cancel a completed booking")
    assert_booking_transition(status, BookingStatus.CANCELLED)
