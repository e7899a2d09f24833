"""Point lookups, guarded updates and inserts for the booking workflows."""

import logging
from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidBookingStatus, NotFoundError
from app.database import Base
from app.domain.ledger import PaymentStatus
from app.models.booking import Booking
from app.models.fleet import Car
from app.models.payment import Payment

logger = logging.getLogger(__name__)


def paid_total():
    """Correlated SQL sum of a booking's payment amounts."""
    return (
        select(func.coalesce(func.sum(Payment.amount), 0))
        .where(Payment.booking_id == Booking.id)
        .scalar_subquery()
    )


def payment_status_case(balance_expr):
    """SQL payment_status for a balance expression: Paid iff nothing is owed."""
    return case(
        (balance_expr <= 0, PaymentStatus.PAID.value),
        else_=PaymentStatus.UNPAID.value,
    )


class BookingStore:
    """Persistence operations the booking workflows rely on.

    ``apply`` issues one UPDATE keyed by primary key whose WHERE clause
    repeats the guards the caller validated. Zero matched rows means another
    writer changed the booking in between; nothing is written.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, booking_id: int, *, for_update: bool = False) -> Booking:
        """Freshest copy of a booking, optionally row-locked."""
        query = (
            select(Booking)
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def get_car(self, car_id: int) -> Car:
        result = await self.db.execute(select(Car).where(Car.id == car_id))
        car = result.scalar_one_or_none()
        if not car:
            raise NotFoundError("Car", car_id)
        return car

    async def daily_rate(self, car_id: int) -> int:
        car = await self.get_car(car_id)
        return car.rent_price or 0

    async def payment_amounts(self, booking_id: int) -> list[int]:
        result = await self.db.execute(
            select(Payment.amount).where(Payment.booking_id == booking_id)
        )
        return list(result.scalars().all())

    async def apply(
        self,
        booking: Booking,
        guards: dict[str, Any],
        values: dict[str, Any],
    ) -> Booking:
        """Conditionally update ``booking`` and commit.

        ``values`` may hold SQL expressions (e.g. ``Booking.balance + 500``)
        so additive changes land on the row as it is at write time.
        """
        booking_id = booking.id
        conditions = [getattr(Booking, name) == value for name, value in guards.items()]
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, *conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            await self.db.rollback()
            logger.warning(
                f"Guarded update on booking {booking_id} matched no row (guards={guards})"
            )
            raise InvalidBookingStatus(
                "Booking was modified by another request. Reload it and try again."
            )
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def add(self, row: Base) -> Base:
        """Stage an insert in the current transaction."""
        self.db.add(row)
        await self.db.flush()
        return row
