"""Payment-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.booking import BookingResponse, LocalDateTime
from app.utils.local_time import ensure_aware


class PaymentCreate(BaseModel):
    """Schema for recording money received against a booking."""

    booking_id: int
    amount: int = Field(..., gt=0)
    payment_method: str | None = Field(
        None, pattern="^(cash|gcash|bank_transfer|card)$"
    )
    paid_date: datetime | None = None
    description: str | None = Field(None, max_length=500)

    @field_validator("paid_date")
    @classmethod
    def attach_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_aware(v) if v else v


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    customer_id: int
    amount: int
    payment_method: str | None
    paid_date: LocalDateTime | None
    description: str | None
    created_at: LocalDateTime


class PaymentRecordResponse(BaseModel):
    success: bool = True
    message: str
    payment: PaymentResponse
    booking: BookingResponse


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total_paid: int
    remaining_balance: int
