"""Append-only audit rows for booking resolutions and extensions."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking, BookingExtension, BookingTransaction
from app.utils.local_time import business_now


class TransactionRecorder:
    """Writes immutable history rows; timestamps are office local time."""

    async def record_cancellation(self, db: AsyncSession, booking: Booking) -> BookingTransaction:
        """Append the cancellation record for a booking that reached Cancelled."""
        return await self._record(db, booking, cancellation_date=business_now())

    async def record_completion(self, db: AsyncSession, booking: Booking) -> BookingTransaction:
        """Append the completion record for a returned booking."""
        return await self._record(db, booking, completion_date=business_now())

    async def record_extension(
        self,
        db: AsyncSession,
        booking: Booking,
        old_end_date: datetime,
        new_end_date: datetime,
        approved_by: int | None = None,
    ) -> BookingExtension:
        """Append the audit row for an approved extension.

        Args:
            db: Database session
            booking: Booking whose end date moved
            old_end_date: End date before approval
            new_end_date: End date after approval
            approved_by: Staff actor who approved

        Returns:
            BookingExtension: Staged audit row
        """
        extension = BookingExtension(
            booking_id=booking.id,
            old_end_date=old_end_date,
            new_end_date=new_end_date,
            approved_by=approved_by,
            created_at=business_now(),
        )
        db.add(extension)
        await db.flush()
        return extension

    async def _record(
        self,
        db: AsyncSession,
        booking: Booking,
        completion_date: datetime | None = None,
        cancellation_date: datetime | None = None,
    ) -> BookingTransaction:
        transaction = BookingTransaction(
            booking_id=booking.id,
            customer_id=booking.customer_id,
            car_id=booking.car_id,
            completion_date=completion_date,
            cancellation_date=cancellation_date,
        )
        db.add(transaction)
        await db.flush()
        return transaction


transaction_recorder = TransactionRecorder()
