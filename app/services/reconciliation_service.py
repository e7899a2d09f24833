"""Corrective pass over denormalised booking and vehicle state.

Side effects that failed after a committed booking update (vehicle status,
placeholder payments) and balances edited outside the workflows are brought
back in line with the source rows here.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import Actor, Permission, assert_permission
from app.domain.booking_state import ACTIVE_STATUSES
from app.domain.ledger import payment_status_for, remaining_balance
from app.models.booking import Booking
from app.models.fleet import Car, CarStatus
from app.models.payment import PLACEHOLDER_DESCRIPTION, Payment

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    bookings_checked: int = 0
    balances_corrected: int = 0
    placeholders_created: int = 0
    cars_marked_rented: int = 0
    cars_marked_available: int = 0


class ReconciliationService:
    async def reconcile(self, db: AsyncSession, actor: Actor | None = None) -> ReconciliationReport:
        """Run every correction and commit.

        ``actor`` is None when the pass runs from the background scheduler.
        """
        if actor is not None:
            assert_permission(actor, Permission.RUN_RECONCILIATION)

        report = ReconciliationReport()
        await self._reconcile_balances(db, report)
        await self._reconcile_availability(db, report)
        await db.commit()

        logger.info(
            f"Reconciliation finished: {report.bookings_checked} bookings checked, "
            f"{report.balances_corrected} balances corrected, "
            f"{report.placeholders_created} placeholders created, "
            f"{report.cars_marked_rented} cars marked rented, "
            f"{report.cars_marked_available} cars marked available"
        )
        return report

    async def _reconcile_balances(self, db: AsyncSession, report: ReconciliationReport) -> None:
        bookings = (await db.execute(select(Booking).order_by(Booking.id))).scalars().all()
        rows = (await db.execute(select(Payment.booking_id, Payment.amount))).all()
        amounts: dict[int, list[int]] = {}
        for booking_id, amount in rows:
            amounts.setdefault(booking_id, []).append(amount)

        for booking in bookings:
            report.bookings_checked += 1

            if booking.id not in amounts:
                db.add(
                    Payment(
                        booking_id=booking.id,
                        customer_id=booking.customer_id,
                        amount=0,
                        description=PLACEHOLDER_DESCRIPTION,
                    )
                )
                report.placeholders_created += 1
                logger.info(f"Created missing placeholder payment for booking {booking.id}")

            balance = remaining_balance(booking.total_amount, amounts.get(booking.id, []))
            status = payment_status_for(balance).value
            if booking.balance == balance and booking.payment_status == status:
                continue

            # Guarded on the values read so a concurrent workflow update wins
            result = await db.execute(
                update(Booking)
                .where(
                    Booking.id == booking.id,
                    Booking.total_amount == booking.total_amount,
                    Booking.balance == booking.balance,
                )
                .values(balance=balance, payment_status=status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                report.balances_corrected += 1
                logger.warning(
                    f"Booking {booking.id} balance corrected from {booking.balance} to {balance}"
                )

        await db.flush()

    async def _reconcile_availability(
        self, db: AsyncSession, report: ReconciliationReport
    ) -> None:
        active = [status.value for status in ACTIVE_STATUSES]
        held = set(
            (
                await db.execute(
                    select(Booking.car_id).where(Booking.booking_status.in_(active)).distinct()
                )
            ).scalars()
        )

        cars = (await db.execute(select(Car.id, Car.car_status))).all()
        for car_id, car_status in cars:
            if car_status == CarStatus.MAINTENANCE:
                continue
            if car_id in held and car_status != CarStatus.RENTED:
                target = CarStatus.RENTED
                report.cars_marked_rented += 1
            elif car_id not in held and car_status != CarStatus.AVAILABLE:
                target = CarStatus.AVAILABLE
                report.cars_marked_available += 1
            else:
                continue
            await db.execute(
                update(Car)
                .where(Car.id == car_id, Car.car_status == car_status)
                .values(car_status=target.value)
                .execution_options(synchronize_session=False)
            )
            logger.warning(f"Car {car_id} status corrected from '{car_status}' to '{target.value}'")


reconciliation_service = ReconciliationService()
