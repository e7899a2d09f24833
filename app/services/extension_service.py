"""Extension workflow.

The cost of an extension is charged when the customer asks for it, so the
pending amount shows up on the booking straight away. Rejecting the request
re-derives the same cost from the proposed and current end dates and takes
it back out.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidBookingStatus, ValidationError
from app.core.permissions import Actor, Permission, assert_owner, assert_permission
from app.domain.booking_state import BookingStatus, PendingRequest
from app.domain.ledger import additional_days, extension_cost
from app.models.booking import Booking
from app.services.booking_store import BookingStore, payment_status_case
from app.services.side_effects import WorkflowResult, run_side_effects
from app.services.transaction_recorder import transaction_recorder
from app.utils.local_time import ensure_aware

logger = logging.getLogger(__name__)


class ExtensionService:
    """Customer extension requests and their staff resolution."""

    async def request_extension(
        self,
        db: AsyncSession,
        booking_id: int,
        actor: Actor,
        new_end_date: datetime,
    ) -> WorkflowResult:
        """Ask to move the end date; the extra days are charged immediately.

        Args:
            db: Database session
            booking_id: Booking to extend
            actor: Owning customer
            new_end_date: Requested end date (naive values are office local time)

        Returns:
            WorkflowResult with additional_cost and new_total
        """
        assert_permission(actor, Permission.REQUEST_EXTENSION)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)
        assert_owner(actor, booking.customer_id, "extend")

        if booking.booking_status != BookingStatus.IN_PROGRESS:
            raise InvalidBookingStatus("Only in-progress bookings can be extended")
        if booking.pending_request == PendingRequest.EXTENSION:
            raise InvalidBookingStatus("An extension request is already pending")
        if booking.pending_request != PendingRequest.NONE:
            raise InvalidBookingStatus(
                f"Booking has a pending {booking.pending_request} request awaiting approval"
            )

        new_end_date = ensure_aware(new_end_date)
        if new_end_date <= booking.end_date:
            raise ValidationError("New end date must be after the current end date")

        days = additional_days(booking.end_date, new_end_date)
        cost = extension_cost(days, await store.daily_rate(booking.car_id))

        await store.apply(
            booking,
            guards={
                "booking_status": BookingStatus.IN_PROGRESS.value,
                "pending_request": PendingRequest.NONE.value,
            },
            values={
                "pending_request": PendingRequest.EXTENSION.value,
                "proposed_end_date": new_end_date,
                "total_amount": Booking.total_amount + cost,
                "balance": Booking.balance + cost,
                "payment_status": payment_status_case(Booking.balance + cost),
            },
        )
        logger.info(
            f"Extension requested for booking {booking.id}: +{days} day(s), cost {cost}"
        )
        return WorkflowResult(
            booking=booking,
            message="Extension request submitted. Waiting for admin confirmation.",
            pending_approval=True,
            additional_cost=cost,
            new_total=booking.total_amount,
        )

    async def confirm_extension(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Move the end date to the proposed one; money was settled at request time."""
        assert_permission(actor, Permission.RESOLVE_EXTENSION)
        store = BookingStore(db)
        booking = await self._get_pending(store, booking_id)

        old_end_date = booking.end_date
        new_end_date = booking.proposed_end_date
        await store.apply(
            booking,
            guards={"pending_request": PendingRequest.EXTENSION.value},
            values={
                "end_date": new_end_date,
                "proposed_end_date": None,
                "pending_request": PendingRequest.NONE.value,
                "admin_id": actor.id,
            },
        )
        logger.info(f"Extension confirmed for booking {booking.id} by {actor.id}")

        result = WorkflowResult(booking=booking, message="Extension confirmed")
        return await run_side_effects(
            db,
            result,
            [
                (
                    "extension_record",
                    lambda: transaction_recorder.record_extension(
                        db, booking, old_end_date, new_end_date, approved_by=actor.id
                    ),
                ),
            ],
        )

    async def reject_extension(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Drop the request and take its cost back out of total and balance."""
        assert_permission(actor, Permission.RESOLVE_EXTENSION)
        store = BookingStore(db)
        booking = await self._get_pending(store, booking_id)

        days = additional_days(booking.end_date, booking.proposed_end_date)
        cost = extension_cost(days, await store.daily_rate(booking.car_id))

        await store.apply(
            booking,
            guards={"pending_request": PendingRequest.EXTENSION.value},
            values={
                "proposed_end_date": None,
                "pending_request": PendingRequest.NONE.value,
                "total_amount": Booking.total_amount - cost,
                "balance": Booking.balance - cost,
                "payment_status": payment_status_case(Booking.balance - cost),
                "admin_id": actor.id,
            },
        )
        logger.info(f"Extension rejected for booking {booking.id}, {cost} deducted")
        return WorkflowResult(
            booking=booking,
            message="Extension request rejected",
            deducted_amount=cost,
            new_total=booking.total_amount,
        )

    async def _get_pending(self, store: BookingStore, booking_id: int) -> Booking:
        booking = await store.get(booking_id, for_update=True)
        if booking.pending_request != PendingRequest.EXTENSION or not booking.proposed_end_date:
            raise InvalidBookingStatus("No extension request found for this booking")
        return booking


extension_service = ExtensionService()
