"""Payment endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_actor, get_db, require_staff
from app.core.permissions import Actor
from app.domain.ledger import remaining_balance, total_paid
from app.schemas.booking import BookingResponse
from app.schemas.payment import (
    PaymentCreate,
    PaymentListResponse,
    PaymentRecordResponse,
    PaymentResponse,
)
from app.services.payment_service import payment_service

router = APIRouter()


@router.post("", response_model=PaymentRecordResponse, status_code=status.HTTP_201_CREATED)
async def record_payment(
    payment_data: PaymentCreate,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentRecordResponse:
    """Record money received against a booking."""
    payment, booking = await payment_service.record_payment(db, actor, payment_data)
    return PaymentRecordResponse(
        message="Payment recorded",
        payment=PaymentResponse.model_validate(payment),
        booking=BookingResponse.model_validate(booking),
    )


@router.get("/booking/{booking_id}", response_model=PaymentListResponse)
async def list_booking_payments(
    booking_id: int,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentListResponse:
    """List a booking's payments (owner or staff)."""
    booking, payments = await payment_service.list_payments(db, booking_id, actor)
    amounts = [p.amount for p in payments]
    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total_paid=total_paid(amounts),
        remaining_balance=remaining_balance(booking.total_amount, amounts),
    )
