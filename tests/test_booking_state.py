import pytest

from app.core.exceptions import InvalidBookingStatus
from app.domain.booking_state import (
    BOOKING_TRANSITIONS,
    BookingStatus,
    assert_booking_transition,
    assert_cancellable,
    is_active,
    is_confirmable,
)


@pytest.mark.parametrize(
    "current, target",
    [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED),
        (BookingStatus.PENDING, BookingStatus.CANCELLED),
        (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED),
    ],
)
def test_allowed_transitions(current, target):
    assert_booking_transition(current.value, target.value)


@pytest.mark.parametrize("terminal", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
def test_no_transition_out_of_terminal_states(terminal):
    assert BOOKING_TRANSITIONS[terminal] == set()
    for target in BookingStatus:
        with pytest.raises(InvalidBookingStatus):
            assert_booking_transition(terminal.value, target.value)


def test_transition_error_names_both_states():
    with pytest.raises(InvalidBookingStatus) as exc:
        assert_booking_transition("In Progress", "Cancelled")
    assert exc.value.detail == "Invalid booking transition: In Progress → Cancelled"
    assert exc.value.kind == "InvalidState"


def test_status_helpers_accept_plain_strings():
    assert is_active("Pending")
    assert is_active("In Progress")
    assert not is_active("Completed")
    assert not is_active("Cancelled")
    assert is_confirmable("Confirmed")
    assert not is_confirmable("Cancelled")


@pytest.mark.parametrize(
    "status, message",
    [
        ("Cancelled", "Booking is already cancelled"),
        ("In Progress", "Cannot cancel an in-progress booking. Please return the vehicle first."),
        ("Completed", "Cannot cancel a completed booking"),
    ],
)
def test_assert_cancellable_rejects(status, message):
    with pytest.raises(InvalidBookingStatus) as exc:
        assert_cancellable(status)
    assert exc.value.detail == message


def test_assert_cancellable_allows_pending_and_confirmed():
    assert_cancellable("Pending")
    assert_cancellable("Confirmed")
