"""Payment confirmation: operators raise a trigger, the apply step consumes it once."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import InvalidBookingStatus
from app.core.permissions import Actor, Permission, assert_permission
from app.domain.booking_state import BookingStatus, is_confirmable
from app.domain.ledger import (
    PaymentStatus,
    meets_confirmation_threshold,
    payment_status_for,
    total_paid,
)
from app.services.booking_store import BookingStore
from app.services.side_effects import WorkflowResult

logger = logging.getLogger(__name__)


class ConfirmationService:
    async def set_payment_trigger(
        self, db: AsyncSession, booking_id: int, actor: Actor, confirmed: bool = True
    ) -> WorkflowResult:
        """Record that an operator verified (or withdrew) a received payment."""
        assert_permission(actor, Permission.CONFIRM_PAYMENT)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)

        if confirmed and not is_confirmable(booking.booking_status):
            raise InvalidBookingStatus(
                f"Cannot confirm payment on a {booking.booking_status.lower()} booking"
            )

        await store.apply(
            booking,
            guards={"booking_status": booking.booking_status},
            values={"payment_confirmed_pending_apply": confirmed},
        )
        logger.info(
            f"Payment trigger {'set' if confirmed else 'cleared'} on booking {booking.id} "
            f"by {actor.id}"
        )
        return WorkflowResult(
            booking=booking,
            message="Payment marked as verified" if confirmed else "Payment verification cleared",
        )

    async def apply_confirmation(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Consume the payment trigger.

        A Pending booking whose payments reach the confirmation threshold
        becomes Confirmed; other statuses only have the trigger cleared.
        The update is guarded on the trigger so a replayed signal fails
        with InvalidBookingStatus and changes nothing.
        """
        assert_permission(actor, Permission.CONFIRM_PAYMENT)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)

        if not booking.payment_confirmed_pending_apply:
            raise InvalidBookingStatus("No verified payment is waiting to be applied")
        if not is_confirmable(booking.booking_status):
            raise InvalidBookingStatus(
                f"Cannot confirm a {booking.booking_status.lower()} booking"
            )

        paid = total_paid(await store.payment_amounts(booking.id))
        values = {"payment_confirmed_pending_apply": False}

        status = booking.booking_status
        if status == BookingStatus.PENDING and meets_confirmation_threshold(
            paid, settings.confirmation_threshold
        ):
            values["booking_status"] = BookingStatus.CONFIRMED.value
            values["admin_id"] = actor.id
        if payment_status_for(booking.balance) == PaymentStatus.PAID:
            values["payment_status"] = PaymentStatus.PAID.value

        await store.apply(
            booking,
            guards={
                "booking_status": status,
                "payment_confirmed_pending_apply": True,
                "balance": booking.balance,
            },
            values=values,
        )

        if booking.booking_status != status:
            message = "Booking confirmed"
            logger.info(f"Booking {booking.id} confirmed after payments totalling {paid}")
        else:
            message = "Payment applied"
            logger.info(f"Payment trigger applied on booking {booking.id}, status {status}")
        return WorkflowResult(booking=booking, message=message)


confirmation_service = ConfirmationService()
