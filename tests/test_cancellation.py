import pytest
from sqlalchemy import select

from app.core.exceptions import AuthorizationError, InvalidBookingStatus, NotFoundError
from app.domain.booking_state import BookingStatus, PendingRequest
from app.models import Booking, BookingTransaction, Car
from app.services.cancellation_service import cancellation_service
from app.utils.local_time import business_tz


async def _car_status(db, car_id):
    result = await db.execute(select(Car.car_status).where(Car.id == car_id))
    return result.scalar_one()


async def test_request_sets_flag_and_leaves_status(db, make_booking, customer):
    booking = await make_booking()

    result = await cancellation_service.request_cancellation(db, booking.id, customer)

    assert result.pending_approval is True
    assert result.booking.cancel_requested is True
    assert result.booking.extend_requested is False
    assert result.booking.booking_status == BookingStatus.PENDING


async def test_request_by_non_owner_is_forbidden(db, make_booking, other_customer):
    booking = await make_booking()

    with pytest.raises(AuthorizationError):
        await cancellation_service.request_cancellation(db, booking.id, other_customer)

    await db.refresh(booking)
    assert booking.pending_request == PendingRequest.NONE


async def test_request_for_missing_booking(db, seeded, customer):
    with pytest.raises(NotFoundError):
        await cancellation_service.request_cancellation(db, 999, customer)


@pytest.mark.parametrize(
    "status", [BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingStatus.CANCELLED]
)
async def test_request_rejected_for_status(db, make_booking, customer, status):
    booking = await make_booking(status=status)

    with pytest.raises(InvalidBookingStatus):
        await cancellation_service.request_cancellation(db, booking.id, customer)


async def test_duplicate_request_fails_without_changes(db, make_booking, customer):
    booking = await make_booking()
    await cancellation_service.request_cancellation(db, booking.id, customer)
    before = (booking.pending_request, booking.booking_status, booking.total_amount, booking.balance)

    with pytest.raises(InvalidBookingStatus, match="already pending"):
        await cancellation_service.request_cancellation(db, booking.id, customer)

    await db.refresh(booking)
    assert (
        booking.pending_request,
        booking.booking_status,
        booking.total_amount,
        booking.balance,
    ) == before


async def test_confirm_cancels_frees_car_and_records_transaction(db, make_booking, customer, staff):
    booking = await make_booking(status=BookingStatus.CONFIRMED)
    await cancellation_service.request_cancellation(db, booking.id, customer)

    result = await cancellation_service.confirm_cancellation(db, booking.id, staff)

    assert result.side_effect_failures == []
    assert result.booking.booking_status == BookingStatus.CANCELLED
    assert result.booking.pending_request == PendingRequest.NONE
    assert result.booking.admin_id == staff.id
    assert await _car_status(db, booking.car_id) == "Available"

    rows = (
        await db.execute(
            select(BookingTransaction).where(BookingTransaction.booking_id == booking.id)
        )
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].completion_date is None
    assert rows[0].cancellation_date is not None
    assert rows[0].customer_id == booking.customer_id


async def test_cancellation_date_is_timezone_aware(db, make_booking, customer, staff):
    booking = await make_booking()
    await cancellation_service.request_cancellation(db, booking.id, customer)
    await cancellation_service.confirm_cancellation(db, booking.id, staff)

    row = (
        await db.execute(
            select(BookingTransaction).where(BookingTransaction.booking_id == booking.id)
        )
    ).scalar_one()
    assert row.cancellation_date.tzinfo is not None
    assert row.cancellation_date.astimezone(business_tz()).date() >= booking.booking_date.date()


async def test_confirm_without_request_fails(db, make_booking, staff):
    booking = await make_booking()

    with pytest.raises(InvalidBookingStatus, match="No cancellation request"):
        await cancellation_service.confirm_cancellation(db, booking.id, staff)


async def test_customer_cannot_confirm(db, make_booking, customer):
    booking = await make_booking(pending_request=PendingRequest.CANCELLATION)

    with pytest.raises(AuthorizationError):
        await cancellation_service.confirm_cancellation(db, booking.id, customer)


async def test_reject_clears_flag_only(db, make_booking, customer, staff):
    booking = await make_booking(status=BookingStatus.CONFIRMED)
    await cancellation_service.request_cancellation(db, booking.id, customer)

    result = await cancellation_service.reject_cancellation(db, booking.id, staff)

    assert result.booking.cancel_requested is False
    assert result.booking.booking_status == BookingStatus.CONFIRMED
    assert result.booking.total_amount == 5000
    assert result.booking.balance == 5000
    assert await _car_status(db, booking.car_id) == "Rented"


async def test_reject_without_request_fails(db, make_booking, staff):
    booking = await make_booking()

    with pytest.raises(InvalidBookingStatus):
        await cancellation_service.reject_cancellation(db, booking.id, staff)


async def test_admin_cancel_needs_no_request(db, make_booking, staff):
    booking = await make_booking()

    result = await cancellation_service.admin_cancel(db, booking.id, staff)

    assert result.booking.booking_status == BookingStatus.CANCELLED
    assert await _car_status(db, booking.car_id) == "Available"


async def test_admin_cancel_clears_pending_cancellation(db, make_booking, staff):
    booking = await make_booking(pending_request=PendingRequest.CANCELLATION)

    result = await cancellation_service.admin_cancel(db, booking.id, staff)

    assert result.booking.booking_status == BookingStatus.CANCELLED
    assert result.booking.pending_request == PendingRequest.NONE


@pytest.mark.parametrize(
    "status", [BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED, BookingStatus.CANCELLED]
)
async def test_admin_cancel_guards(db, make_booking, staff, status):
    booking = await make_booking(status=status)

    with pytest.raises(InvalidBookingStatus):
        await cancellation_service.admin_cancel(db, booking.id, staff)

    row = await db.get(Booking, booking.id)
    await db.refresh(row)
    assert row.booking_status == status
