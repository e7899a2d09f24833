import pytest
from pydantic import ValidationError

from app.schemas.booking import BookingCreate, BookingResponse, PaymentTriggerUpdate
from app.utils.local_time import business_tz
from tests.utils import local


def test_booking_create_accepts_front_end_spellings():
    data = BookingCreate.model_validate(
        {
            "car_id": 2,
            "startDate": "2026-05-01T00:00:00",
            "endDate": "2026-05-03T00:00:00",
            "pickupTime": "07:45",
            "pickupLocation": "Terminal 3",
            "rental_fee": 2500.4,
            "drivers_id": "",
        }
    )

    fields = data.to_fields()
    assert fields["start_date"] == local(2026, 5, 1)
    assert fields["pickup_time"] == local(2026, 5, 1, 7, 45)
    assert fields["dropoff_time"] == local(2026, 5, 3, 17)
    assert fields["pickup_loc"] == "Terminal 3"
    assert fields["driver_id"] is None
    assert fields["total_amount"] == 2500
    assert fields["is_deliver"] is False
    assert fields["purpose"] == "Not specified"


def test_booking_create_rejects_inverted_window():
    with pytest.raises(ValidationError):
        BookingCreate(car_id=1, start_date=local(2026, 5, 3), end_date=local(2026, 5, 1))


@pytest.mark.parametrize("clock", ["24:00", "9am", "12:60"])
def test_booking_create_rejects_bad_clock(clock):
    with pytest.raises(ValidationError):
        BookingCreate(
            car_id=1, start_date=local(2026, 5, 1), end_date=local(2026, 5, 2), pickup_time=clock
        )


def test_payment_trigger_legacy_flag():
    assert PaymentTriggerUpdate.model_validate({"isPay": False}).confirmed is False
    assert PaymentTriggerUpdate.model_validate({}).confirmed is True


async def test_response_renders_office_time_and_ledger(db, make_booking):
    booking = await make_booking()

    response = BookingResponse.with_ledger(booking, [0, 1200])

    assert response.start_date.utcoffset() == business_tz().utcoffset(response.start_date)
    assert response.start_date.hour == 9
    assert response.total_paid == 1200
    assert response.remaining_balance == 3800
    assert response.cancel_requested is False
