"""Recording money received against bookings."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidBookingStatus, ValidationError
from app.core.permissions import Actor, Permission, assert_owner, assert_permission
from app.domain.booking_state import BookingStatus
from app.models.booking import Booking
from app.models.payment import Payment
from app.schemas.payment import PaymentCreate
from app.services.booking_store import BookingStore, paid_total, payment_status_case
from app.utils.local_time import business_now

logger = logging.getLogger(__name__)


class PaymentService:
    """Appends payments and re-derives the booking balance in the same commit."""

    async def record_payment(
        self, db: AsyncSession, actor: Actor, data: PaymentCreate
    ) -> tuple[Payment, Booking]:
        """Record a payment received by staff.

        The new row is flushed first so the balance update, computed from
        the SQL sum of all the booking's payments, already counts it.

        Args:
            db: Database session
            actor: Staff member recording the payment
            data: Payment details

        Returns:
            Tuple of the new payment and the refreshed booking
        """
        assert_permission(actor, Permission.RECORD_PAYMENT)
        if data.amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")

        store = BookingStore(db)
        booking = await store.get(data.booking_id, for_update=True)
        if booking.booking_status == BookingStatus.CANCELLED:
            raise InvalidBookingStatus("Cannot record a payment for a cancelled booking")

        payment = Payment(
            booking_id=booking.id,
            customer_id=booking.customer_id,
            amount=data.amount,
            payment_method=data.payment_method,
            paid_date=data.paid_date or business_now(),
            description=data.description or "Payment received",
        )
        await store.add(payment)

        await store.apply(
            booking,
            guards={"booking_status": booking.booking_status},
            values={
                "balance": Booking.total_amount - paid_total(),
                "payment_status": payment_status_case(Booking.total_amount - paid_total()),
            },
        )
        logger.info(
            f"Payment {payment.id} of {payment.amount} recorded for booking {booking.id} "
            f"by {actor.id}; balance now {booking.balance}"
        )
        return payment, booking

    async def list_payments(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> tuple[Booking, list[Payment]]:
        """A booking's payments in the order they were recorded."""
        store = BookingStore(db)
        booking = await store.get(booking_id)
        if not actor.is_staff:
            assert_owner(actor, booking.customer_id, "view payments for")
        result = await db.execute(
            select(Payment).where(Payment.booking_id == booking.id).order_by(Payment.id)
        )
        return booking, list(result.scalars().all())


payment_service = PaymentService()
