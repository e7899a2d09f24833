"""Booking-related Pydantic schemas."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from app.config import settings
from app.domain import ledger
from app.domain.booking_state import BookingStatus
from app.domain.ledger import PaymentStatus
from app.utils.local_time import combine_local, ensure_aware, to_business_time

# Timestamps are returned in office local time
LocalDateTime = Annotated[datetime, AfterValidator(to_business_time)]

CLOCK_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


def _blank_to_none(value: Any) -> Any:
    if value in ("", "null", "undefined"):
        return None
    return value


class BookingCreate(BaseModel):
    """Canonical booking request.

    Accepts the legacy and front-end spellings of each field (``startDate``,
    ``pickupTime``, ``totalCost``, ``selectedDriver`` ...) and resolves them
    to one name each; ``to_fields`` maps the result onto booking columns.
    """

    model_config = ConfigDict(populate_by_name=True)

    car_id: int
    booking_date: datetime | None = None
    purpose: str | None = Field(None, max_length=1000)

    start_date: datetime = Field(validation_alias=AliasChoices("start_date", "startDate"))
    end_date: datetime = Field(validation_alias=AliasChoices("end_date", "endDate"))
    pickup_time: str | None = Field(
        None,
        pattern=CLOCK_PATTERN,
        validation_alias=AliasChoices("pickup_time", "pickupTime"),
    )
    dropoff_time: str | None = Field(
        None,
        pattern=CLOCK_PATTERN,
        validation_alias=AliasChoices("dropoff_time", "dropoffTime"),
    )

    pickup_loc: str | None = Field(
        None, validation_alias=AliasChoices("pickup_loc", "pickupLocation")
    )
    dropoff_loc: str | None = Field(
        None, validation_alias=AliasChoices("dropoff_loc", "dropoffLocation")
    )
    delivery_type: str | None = Field(
        None, validation_alias=AliasChoices("delivery_type", "deliveryType", "booking_type")
    )
    delivery_location: str | None = Field(
        None, validation_alias=AliasChoices("delivery_location", "deliveryLocation")
    )

    is_self_drive: bool | None = Field(
        None, validation_alias=AliasChoices("is_self_drive", "isSelfDriver", "isSelfDrive")
    )
    driver_id: int | None = Field(
        None, validation_alias=AliasChoices("driver_id", "drivers_id", "selectedDriver")
    )
    total_amount: float | None = Field(
        None,
        ge=0,
        validation_alias=AliasChoices("total_amount", "totalCost", "rental_fee"),
    )

    @field_validator("driver_id", "total_amount", "pickup_time", "dropoff_time", mode="before")
    @classmethod
    def blank_is_missing(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode="after")
    def validate_window(self) -> "BookingCreate":
        if ensure_aware(self.end_date) < ensure_aware(self.start_date):
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def is_delivery(self) -> bool:
        return self.delivery_type == "delivery"

    def to_fields(self) -> dict[str, Any]:
        """Resolved booking columns; ``total_amount`` is None when not supplied."""
        office = settings.default_office_location
        return {
            "car_id": self.car_id,
            "driver_id": self.driver_id,
            "booking_date": ensure_aware(self.booking_date) if self.booking_date else None,
            "purpose": self.purpose or "Not specified",
            "start_date": ensure_aware(self.start_date),
            "end_date": ensure_aware(self.end_date),
            "pickup_time": combine_local(
                self.start_date, self.pickup_time or settings.default_pickup_time
            ),
            "dropoff_time": combine_local(
                self.end_date, self.dropoff_time or settings.default_dropoff_time
            ),
            "pickup_loc": self.pickup_loc or self.delivery_location or office,
            "dropoff_loc": self.dropoff_loc or office,
            "is_self_drive": True if self.is_self_drive is None else self.is_self_drive,
            "is_deliver": self.is_delivery,
            "deliver_loc": (self.delivery_location or self.pickup_loc) if self.is_delivery else None,
            "total_amount": round(self.total_amount) if self.total_amount is not None else None,
        }


class BookingUpdate(BaseModel):
    """Customer changes to their own Pending booking."""

    model_config = ConfigDict(populate_by_name=True)

    purpose: str | None = Field(None, max_length=1000)
    start_date: datetime | None = None
    end_date: datetime | None = None
    pickup_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    dropoff_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    pickup_loc: str | None = None
    dropoff_loc: str | None = None
    is_self_drive: bool | None = Field(
        None, validation_alias=AliasChoices("is_self_drive", "isSelfDriver")
    )
    driver_id: int | None = Field(
        None, validation_alias=AliasChoices("driver_id", "drivers_id")
    )
    total_amount: int | None = Field(None, gt=0)

    @field_validator("driver_id", mode="before")
    @classmethod
    def blank_driver(cls, v: Any) -> Any:
        return _blank_to_none(v)


class BookingAdminUpdate(BaseModel):
    """Raw field edits for administrative correction.

    Workflow guards are not applied to these values.
    """

    model_config = ConfigDict(use_enum_values=True)

    purpose: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    pickup_time: datetime | None = None
    dropoff_time: datetime | None = None
    pickup_loc: str | None = None
    dropoff_loc: str | None = None
    driver_id: int | None = None
    is_self_drive: bool | None = None
    booking_status: BookingStatus | None = None
    payment_status: PaymentStatus | None = None
    total_amount: int | None = Field(None, ge=0)
    is_released: bool | None = None
    is_returned: bool | None = None

    @field_validator("start_date", "end_date", "pickup_time", "dropoff_time")
    @classmethod
    def attach_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v) if v else v


class ExtensionRequest(BaseModel):
    new_end_date: datetime


class PaymentTriggerUpdate(BaseModel):
    """Operator verification that money was received."""

    confirmed: bool = Field(True, validation_alias=AliasChoices("confirmed", "isPay"))


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_id: int
    car_id: int
    driver_id: int | None
    admin_id: int | None

    # Request
    booking_date: LocalDateTime
    purpose: str | None

    # Rental window
    start_date: LocalDateTime
    end_date: LocalDateTime
    pickup_time: LocalDateTime
    dropoff_time: LocalDateTime

    # Logistics
    pickup_loc: str | None
    dropoff_loc: str | None
    is_self_drive: bool
    is_deliver: bool
    deliver_loc: str | None

    # Status
    booking_status: str
    pending_request: str
    cancel_requested: bool
    extend_requested: bool
    proposed_end_date: LocalDateTime | None
    payment_confirmed_pending_apply: bool
    is_released: bool
    is_returned: bool

    # Money
    total_amount: int
    balance: int
    payment_status: str
    total_paid: int | None = None
    remaining_balance: int | None = None

    # Timestamps
    created_at: LocalDateTime
    updated_at: LocalDateTime

    @classmethod
    def with_ledger(cls, booking: Any, amounts: list[int]) -> "BookingResponse":
        """Booking snapshot plus totals derived from its payment amounts."""
        response = cls.model_validate(booking)
        response.total_paid = ledger.total_paid(amounts)
        response.remaining_balance = ledger.remaining_balance(booking.total_amount, amounts)
        return response


class SideEffectFailureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    operation: str
    kind: str
    code: str


class WorkflowResponse(BaseModel):
    """Result of a booking workflow call."""

    model_config = ConfigDict(from_attributes=True)

    success: bool = True
    message: str
    booking: BookingResponse
    additional_cost: int | None = None
    new_total: int | None = None
    deducted_amount: int | None = None
    pending_approval: bool = False
    side_effect_failures: list[SideEffectFailureResponse] = []


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    total: int


class ReconciliationResponse(BaseModel):
    """Counts of corrections made by a reconciliation pass."""

    model_config = ConfigDict(from_attributes=True)

    bookings_checked: int
    balances_corrected: int
    placeholders_created: int
    cars_marked_rented: int
    cars_marked_available: int
