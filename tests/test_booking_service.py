import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    AuthorizationError,
    InvalidBookingStatus,
    NotFoundError,
    ValidationError,
    VehicleNotAvailable,
)
from app.domain.booking_state import BookingStatus, PendingRequest
from app.models import Booking, BookingTransaction, Car, Payment
from app.schemas.booking import BookingAdminUpdate, BookingCreate, BookingUpdate
from app.schemas.payment import PaymentCreate
from app.services.booking_service import booking_service
from app.services.payment_service import payment_service
from app.utils.local_time import business_tz
from tests.utils import local


def _request(**overrides) -> BookingCreate:
    payload = {
        "car_id": 1,
        "startDate": local(2026, 4, 1, 9).isoformat(),
        "endDate": local(2026, 4, 4, 9).isoformat(),
        "pickupTime": "08:30",
        "dropoffTime": "18:00",
        "purpose": "Business trip",
    }
    payload.update(overrides)
    return BookingCreate.model_validate(payload)


async def _car_status(db, car_id):
    return (await db.execute(select(Car.car_status).where(Car.id == car_id))).scalar_one()


async def test_create_booking_writes_placeholder_and_holds_car(db, seeded, customer):
    result = await booking_service.create_booking(db, customer, _request())

    booking = result.booking
    assert result.side_effect_failures == []
    assert booking.booking_status == BookingStatus.PENDING
    assert booking.pending_request == PendingRequest.NONE
    assert booking.customer_id == customer.id
    assert booking.total_amount == 4500
    assert booking.balance == 4500
    assert booking.payment_status == "Unpaid"
    assert booking.pickup_time.astimezone(business_tz()).strftime("%H:%M") == "08:30"
    assert booking.dropoff_time.astimezone(business_tz()).strftime("%H:%M") == "18:00"
    assert await _car_status(db, 1) == "Rented"

    payments = (
        await db.execute(select(Payment).where(Payment.booking_id == booking.id))
    ).scalars().all()
    assert len(payments) == 1
    assert payments[0].amount == 0
    assert payments[0].description == "User Booked the Car"


async def test_create_booking_uses_supplied_total_and_defaults(db, seeded, customer):
    result = await booking_service.create_booking(
        db,
        customer,
        _request(totalCost="3200", pickupTime="", dropoffTime=None, selectedDriver="1", isSelfDriver=False),
    )

    booking = result.booking
    assert booking.total_amount == 3200
    assert booking.driver_id == 1
    assert booking.is_self_drive is False
    assert booking.pickup_loc == "JA Car Rental Office"
    assert booking.pickup_time.astimezone(business_tz()).strftime("%H:%M") == "09:00"
    assert booking.dropoff_time.astimezone(business_tz()).strftime("%H:%M") == "17:00"


async def test_delivery_booking_records_location(db, seeded, customer):
    result = await booking_service.create_booking(
        db, customer, _request(deliveryType="delivery", deliveryLocation="Makati City")
    )

    assert result.booking.is_deliver is True
    assert result.booking.deliver_loc == "Makati City"
    assert result.booking.pickup_loc == "Makati City"


async def test_rented_car_cannot_be_booked(db, make_booking, customer):
    await make_booking(car_id=1)

    with pytest.raises(VehicleNotAvailable):
        await booking_service.create_booking(db, customer, _request())

    count = (await db.execute(select(func.count(Booking.id)))).scalar_one()
    assert count == 1


async def test_unknown_driver_is_rejected(db, seeded, customer):
    with pytest.raises(NotFoundError):
        await booking_service.create_booking(db, customer, _request(driver_id=77))


async def test_staff_cannot_create_bookings(db, seeded, staff):
    with pytest.raises(AuthorizationError):
        await booking_service.create_booking(db, staff, _request())


async def test_update_pending_booking_recomputes_balance(db, make_booking, customer, staff):
    booking = await make_booking()
    await payment_service.record_payment(db, staff, PaymentCreate(booking_id=booking.id, amount=1000))

    result = await booking_service.update_my_booking(
        db, booking.id, customer, BookingUpdate(purpose="Wedding", total_amount=6000, pickup_time="10:15")
    )

    assert result.message == "Booking for Toyota Vios has been updated"
    assert result.booking.purpose == "Wedding"
    assert result.booking.total_amount == 6000
    assert result.booking.balance == 5000
    assert result.booking.pickup_time == local(2026, 3, 1, 10, 15)


async def test_update_rejects_non_pending(db, make_booking, customer):
    booking = await make_booking(status=BookingStatus.CONFIRMED)

    with pytest.raises(InvalidBookingStatus):
        await booking_service.update_my_booking(db, booking.id, customer, BookingUpdate(purpose="x"))


async def test_update_rejects_inverted_window(db, make_booking, customer):
    booking = await make_booking()

    with pytest.raises(ValidationError):
        await booking_service.update_my_booking(
            db, booking.id, customer, BookingUpdate(end_date=local(2026, 2, 1))
        )


async def test_update_with_no_changes(db, make_booking, customer):
    booking = await make_booking()

    with pytest.raises(ValidationError):
        await booking_service.update_my_booking(db, booking.id, customer, BookingUpdate())


async def test_release_and_complete(db, make_booking, staff):
    booking = await make_booking(status=BookingStatus.CONFIRMED)

    released = await booking_service.release(db, booking.id, staff)
    assert released.booking.booking_status == BookingStatus.IN_PROGRESS
    assert released.booking.is_released is True

    completed = await booking_service.complete(db, booking.id, staff)
    assert completed.booking.booking_status == BookingStatus.COMPLETED
    assert completed.booking.is_returned is True
    assert await _car_status(db, booking.car_id) == "Available"

    rows = (
        await db.execute(
            select(BookingTransaction).where(BookingTransaction.booking_id == booking.id)
        )
    ).scalars().all()
    assert len(rows) == 1
    assert rows[0].completion_date is not None
    assert rows[0].cancellation_date is None


async def test_release_requires_confirmed(db, make_booking, staff):
    booking = await make_booking()

    with pytest.raises(InvalidBookingStatus):
        await booking_service.release(db, booking.id, staff)


async def test_complete_refused_while_extension_pending(db, make_booking, staff):
    booking = await make_booking(
        status=BookingStatus.IN_PROGRESS,
        pending_request=PendingRequest.EXTENSION,
        proposed_end_date=local(2026, 3, 6, 17),
    )

    with pytest.raises(InvalidBookingStatus, match="extension"):
        await booking_service.complete(db, booking.id, staff)


async def test_delete_removes_booking_and_payments(db, make_booking, admin):
    booking = await make_booking()
    booking_id = booking.id

    result = await booking_service.delete_booking(db, booking_id, admin)

    assert result.side_effect_failures == []
    assert await db.get(Booking, booking_id) is None
    remaining = (
        await db.execute(select(func.count(Payment.id)).where(Payment.booking_id == booking_id))
    ).scalar_one()
    assert remaining == 0
    assert await _car_status(db, 1) == "Available"


async def test_staff_cannot_delete(db, make_booking, staff):
    booking = await make_booking()

    with pytest.raises(AuthorizationError):
        await booking_service.delete_booking(db, booking.id, staff)


async def test_admin_update_recomputes_balance(db, make_booking, admin, staff):
    booking = await make_booking()
    await payment_service.record_payment(db, staff, PaymentCreate(booking_id=booking.id, amount=2000))

    result = await booking_service.admin_update(
        db,
        booking.id,
        admin,
        BookingAdminUpdate(booking_status=BookingStatus.IN_PROGRESS, total_amount=2000),
    )

    assert result.booking.booking_status == "In Progress"
    assert result.booking.total_amount == 2000
    assert result.booking.balance == 0
    assert result.booking.payment_status == "Paid"
    assert result.booking.admin_id == admin.id


async def test_get_booking_visibility(db, make_booking, customer, other_customer, staff):
    booking = await make_booking()

    _, amounts = await booking_service.get_booking(db, booking.id, customer)
    assert amounts == [0]
    await booking_service.get_booking(db, booking.id, staff)
    with pytest.raises(AuthorizationError):
        await booking_service.get_booking(db, booking.id, other_customer)


async def test_list_and_my_bookings(db, make_booking, customer, other_customer, staff):
    await make_booking(car_id=1)
    await make_booking(car_id=2, status=BookingStatus.CONFIRMED, customer_id=other_customer.id)

    rows, total = await booking_service.list_bookings(db, staff)
    assert total == 2
    assert len(rows) == 2

    rows, total = await booking_service.list_bookings(db, staff, status=BookingStatus.CONFIRMED)
    assert total == 1
    assert rows[0][0].car_id == 2

    mine = await booking_service.my_bookings(db, customer)
    assert [b.customer_id for b, _ in mine] == [customer.id]

    with pytest.raises(AuthorizationError):
        await booking_service.list_bookings(db, customer)


@pytest.mark.parametrize(
    "status, operation",
    [(BookingStatus.CONFIRMED, "release"), (BookingStatus.IN_PROGRESS, "complete")],
)
async def test_progress_refused_while_cancellation_pending(db, make_booking, staff, status, operation):
    booking = await make_booking(status=status, pending_request=PendingRequest.CANCELLATION)

    with pytest.raises(InvalidBookingStatus, match="pending cancellation request"):
        await getattr(booking_service, operation)(db, booking.id, staff)

    await db.refresh(booking)
    assert booking.booking_status == status
    assert booking.cancel_requested is True


async def test_deleting_closed_booking_keeps_rebooked_car_rented(db, make_booking, admin):
    old = await make_booking(car_id=1, status=BookingStatus.CANCELLED)
    await make_booking(car_id=1)
    assert await _car_status(db, 1) == "Rented"

    result = await booking_service.delete_booking(db, old.id, admin)

    assert result.side_effect_failures == []
    assert await _car_status(db, 1) == "Rented"
