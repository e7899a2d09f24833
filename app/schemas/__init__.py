"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingAdminUpdate,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
    ExtensionRequest,
    PaymentTriggerUpdate,
    ReconciliationResponse,
    WorkflowResponse,
)
from app.schemas.payment import (
    PaymentCreate,
    PaymentListResponse,
    PaymentRecordResponse,
    PaymentResponse,
)

__all__ = [
    # Booking
    "BookingAdminUpdate",
    "BookingCreate",
    "BookingListResponse",
    "BookingResponse",
    "BookingUpdate",
    "ExtensionRequest",
    "PaymentTriggerUpdate",
    "ReconciliationResponse",
    "WorkflowResponse",
    # Payment
    "PaymentCreate",
    "PaymentListResponse",
    "PaymentRecordResponse",
    "PaymentResponse",
]
