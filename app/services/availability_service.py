"""Availability gate: keeps a car's status in step with its booking."""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DependencyFailure
from app.models.fleet import Car, CarStatus

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Marks cars Rented while a booking holds them and Available once resolved."""

    async def on_booking_activated(self, db: AsyncSession, car_id: int) -> None:
        """Booking created or released: the car is no longer bookable."""
        await self._set_status(db, car_id, CarStatus.RENTED)

    async def on_booking_resolved(self, db: AsyncSession, car_id: int) -> None:
        """Booking cancelled, completed or deleted: the car is bookable again."""
        await self._set_status(db, car_id, CarStatus.AVAILABLE)

    async def _set_status(self, db: AsyncSession, car_id: int, status: CarStatus) -> None:
        result = await db.execute(
            update(Car)
            .where(Car.id == car_id)
            .values(car_status=status.value)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise DependencyFailure("vehicle_availability", f"Car {car_id} not found")
        logger.info(f"Car {car_id} status updated to '{status.value}'")


availability_service = AvailabilityService()
