import pytest

from app.core.exceptions import InvalidBookingStatus, NotFoundError
from app.domain.booking_state import BookingStatus
from app.models import Booking
from app.services.booking_store import BookingStore


async def test_apply_writes_when_guards_hold(db, make_booking):
    booking = await make_booking()

    await BookingStore(db).apply(
        booking,
        guards={"booking_status": BookingStatus.PENDING.value},
        values={"purpose": "Airport transfer", "balance": Booking.balance - 500},
    )

    assert booking.purpose == "Airport transfer"
    assert booking.balance == 4500


async def test_lost_guard_is_invalid_state_and_writes_nothing(db, make_booking):
    booking = await make_booking()
    store = BookingStore(db)

    with pytest.raises(InvalidBookingStatus, match="modified by another request"):
        await store.apply(
            booking,
            guards={"booking_status": BookingStatus.CONFIRMED.value},
            values={"purpose": "Overwritten"},
        )

    fresh = await store.get(booking.id)
    assert fresh.purpose == "Family trip"
    assert fresh.booking_status == BookingStatus.PENDING


async def test_get_missing_booking(db, seeded):
    with pytest.raises(NotFoundError):
        await BookingStore(db).get(12345)
