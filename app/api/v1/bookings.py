"""Booking endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_actor, get_db, require_customer, require_staff
from app.core.middleware import booking_limiter, request_limiter
from app.core.permissions import Actor
from app.domain.booking_state import BookingStatus
from app.schemas.booking import (
    BookingAdminUpdate,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingUpdate,
    ExtensionRequest,
    PaymentTriggerUpdate,
    WorkflowResponse,
)
from app.services.booking_service import booking_service
from app.services.cancellation_service import cancellation_service
from app.services.confirmation_service import confirmation_service
from app.services.extension_service import extension_service

router = APIRouter()


@router.post(
    "",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(booking_limiter)],
)
async def create_booking(
    booking_data: BookingCreate,
    actor: Annotated[Actor, Depends(require_customer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Create a booking request for the current customer."""
    result = await booking_service.create_booking(db, actor, booking_data)
    return WorkflowResponse.model_validate(result)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
    booking_status: Annotated[BookingStatus | None, Query(alias="status")] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> BookingListResponse:
    """List all bookings (staff)."""
    rows, total = await booking_service.list_bookings(db, actor, booking_status, skip, limit)
    return BookingListResponse(
        items=[BookingResponse.with_ledger(booking, amounts) for booking, amounts in rows],
        total=total,
    )


@router.get("/my-bookings", response_model=list[BookingResponse])
async def get_my_bookings(
    actor: Annotated[Actor, Depends(require_customer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[BookingResponse]:
    """List the current customer's bookings."""
    rows = await booking_service.my_bookings(db, actor)
    return [BookingResponse.with_ledger(booking, amounts) for booking, amounts in rows]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    actor: Annotated[Actor, Depends(get_current_actor)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Get booking details (owner or staff)."""
    booking, amounts = await booking_service.get_booking(db, booking_id, actor)
    return BookingResponse.with_ledger(booking, amounts)


@router.patch("/{booking_id}", response_model=WorkflowResponse)
async def admin_update_booking(
    booking_id: int,
    update_data: BookingAdminUpdate,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Edit raw booking fields. Workflow guards do not apply."""
    result = await booking_service.admin_update(db, booking_id, actor, update_data)
    return WorkflowResponse.model_validate(result)


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict:
    """Delete a booking with its payments and history."""
    result = await booking_service.delete_booking(db, booking_id, actor)
    return {
        "success": True,
        "message": result.message,
        "side_effect_failures": [
            {"operation": f.operation, "kind": f.kind, "code": f.code}
            for f in result.side_effect_failures
        ],
    }


@router.put("/{booking_id}/update", response_model=WorkflowResponse)
async def update_my_booking(
    booking_id: int,
    update_data: BookingUpdate,
    actor: Annotated[Actor, Depends(require_customer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Update the current customer's Pending booking."""
    result = await booking_service.update_my_booking(db, booking_id, actor, update_data)
    return WorkflowResponse.model_validate(result)


# Cancellation


@router.put(
    "/{booking_id}/cancel",
    response_model=WorkflowResponse,
    dependencies=[Depends(request_limiter)],
)
async def request_cancellation(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_customer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Ask staff to cancel the booking."""
    result = await cancellation_service.request_cancellation(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/confirm-cancellation", response_model=WorkflowResponse)
async def confirm_cancellation(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    result = await cancellation_service.confirm_cancellation(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/reject-cancellation", response_model=WorkflowResponse)
async def reject_cancellation(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    result = await cancellation_service.reject_cancellation(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/admin-cancel", response_model=WorkflowResponse)
async def admin_cancel_booking(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Cancel directly, without a customer request."""
    result = await cancellation_service.admin_cancel(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


# Extension


@router.put(
    "/{booking_id}/extend",
    response_model=WorkflowResponse,
    dependencies=[Depends(request_limiter)],
)
async def request_extension(
    booking_id: int,
    extension: ExtensionRequest,
    actor: Annotated[Actor, Depends(require_customer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Ask to extend an in-progress rental; the extra cost is added immediately."""
    result = await extension_service.request_extension(
        db, booking_id, actor, extension.new_end_date
    )
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/confirm-extension", response_model=WorkflowResponse)
async def confirm_extension(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    result = await extension_service.confirm_extension(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/reject-extension", response_model=WorkflowResponse)
async def reject_extension(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    result = await extension_service.reject_extension(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


# Payment confirmation and rental progression


@router.put("/{booking_id}/payment-trigger", response_model=WorkflowResponse)
async def set_payment_trigger(
    booking_id: int,
    trigger: PaymentTriggerUpdate,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Mark that money for this booking was verified as received."""
    result = await confirmation_service.set_payment_trigger(
        db, booking_id, actor, trigger.confirmed
    )
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/confirm", response_model=WorkflowResponse)
async def confirm_booking(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    """Apply a verified payment, confirming the booking once enough is paid."""
    result = await confirmation_service.apply_confirmation(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/release", response_model=WorkflowResponse)
async def release_booking(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    result = await booking_service.release(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)


@router.put("/{booking_id}/complete", response_model=WorkflowResponse)
async def complete_booking(
    booking_id: int,
    actor: Annotated[Actor, Depends(require_staff)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowResponse:
    result = await booking_service.complete(db, booking_id, actor)
    return WorkflowResponse.model_validate(result)
