"""Cancellation workflow: customer request, staff confirm/reject, direct staff cancel."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidBookingStatus
from app.core.permissions import Actor, Permission, assert_owner, assert_permission
from app.domain.booking_state import BookingStatus, PendingRequest, assert_cancellable
from app.services.availability_service import availability_service
from app.services.booking_store import BookingStore
from app.services.side_effects import WorkflowResult, run_side_effects
from app.services.transaction_recorder import transaction_recorder

logger = logging.getLogger(__name__)


class CancellationService:
    """Two-step cancellation plus the staff-initiated shortcut."""

    async def request_cancellation(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Flag a booking for cancellation; status is left for staff to change."""
        assert_permission(actor, Permission.REQUEST_CANCELLATION)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)
        assert_owner(actor, booking.customer_id, "cancel")

        if booking.booking_status == BookingStatus.CANCELLED:
            raise InvalidBookingStatus("Booking is already cancelled")
        if booking.pending_request == PendingRequest.CANCELLATION:
            raise InvalidBookingStatus("Cancellation request already pending admin approval")
        if booking.pending_request != PendingRequest.NONE:
            raise InvalidBookingStatus(
                f"Booking has a pending {booking.pending_request} request awaiting approval"
            )
        assert_cancellable(booking.booking_status)

        await store.apply(
            booking,
            guards={
                "booking_status": booking.booking_status,
                "pending_request": PendingRequest.NONE.value,
            },
            values={"pending_request": PendingRequest.CANCELLATION.value},
        )
        logger.info(f"Cancellation requested for booking {booking.id} by customer {actor.id}")
        return WorkflowResult(
            booking=booking,
            message="Cancellation request submitted. Waiting for admin confirmation.",
            pending_approval=True,
        )

    async def confirm_cancellation(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Approve a pending cancellation request."""
        assert_permission(actor, Permission.RESOLVE_CANCELLATION)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)

        if booking.pending_request != PendingRequest.CANCELLATION:
            raise InvalidBookingStatus("No cancellation request found for this booking")
        if booking.booking_status == BookingStatus.CANCELLED:
            raise InvalidBookingStatus("Booking is already cancelled")
        assert_cancellable(booking.booking_status)

        return await self._cancel(
            db,
            store,
            booking,
            actor,
            expected_request=PendingRequest.CANCELLATION,
            message="Cancellation confirmed",
        )

    async def reject_cancellation(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Drop a pending cancellation request; status and money are untouched."""
        assert_permission(actor, Permission.RESOLVE_CANCELLATION)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)

        if booking.pending_request != PendingRequest.CANCELLATION:
            raise InvalidBookingStatus("No cancellation request found for this booking")

        await store.apply(
            booking,
            guards={"pending_request": PendingRequest.CANCELLATION.value},
            values={"pending_request": PendingRequest.NONE.value, "admin_id": actor.id},
        )
        logger.info(f"Cancellation request rejected for booking {booking.id} by {actor.id}")
        return WorkflowResult(booking=booking, message="Cancellation request rejected")

    async def admin_cancel(self, db: AsyncSession, booking_id: int, actor: Actor) -> WorkflowResult:
        """Cancel without a prior customer request."""
        assert_permission(actor, Permission.RESOLVE_CANCELLATION)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)

        assert_cancellable(booking.booking_status)
        if booking.pending_request == PendingRequest.EXTENSION:
            raise InvalidBookingStatus("Resolve the pending extension request first")

        return await self._cancel(
            db,
            store,
            booking,
            actor,
            expected_request=PendingRequest(booking.pending_request),
            message="Booking has been cancelled",
        )

    async def _cancel(
        self,
        db: AsyncSession,
        store: BookingStore,
        booking,
        actor: Actor,
        expected_request: PendingRequest,
        message: str,
    ) -> WorkflowResult:
        await store.apply(
            booking,
            guards={
                "booking_status": booking.booking_status,
                "pending_request": expected_request.value,
            },
            values={
                "booking_status": BookingStatus.CANCELLED.value,
                "pending_request": PendingRequest.NONE.value,
                "admin_id": actor.id,
            },
        )
        logger.info(f"Booking {booking.id} cancelled by {actor.role.value} {actor.id}")

        result = WorkflowResult(booking=booking, message=message)
        return await run_side_effects(
            db,
            result,
            [
                (
                    "vehicle_availability",
                    lambda: availability_service.on_booking_resolved(db, booking.car_id),
                ),
                (
                    "cancellation_record",
                    lambda: transaction_recorder.record_cancellation(db, booking),
                ),
            ],
        )


cancellation_service = CancellationService()
