"""Booking creation, customer edits, rental progression and queries."""

import logging
from collections import defaultdict

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AuthorizationError,
    InvalidBookingStatus,
    NotFoundError,
    ValidationError,
    VehicleNotAvailable,
)
from app.core.permissions import (
    Actor,
    ActorRole,
    Permission,
    assert_owner,
    assert_permission,
)
from app.domain.booking_state import (
    BookingStatus,
    PendingRequest,
    assert_booking_transition,
    is_active,
)
from app.domain.ledger import payment_status_for, rental_cost
from app.models.booking import Booking, BookingExtension, BookingTransaction
from app.models.fleet import CarStatus, Customer, Driver
from app.models.payment import PLACEHOLDER_DESCRIPTION, Payment
from app.schemas.booking import BookingAdminUpdate, BookingCreate, BookingUpdate
from app.services.availability_service import availability_service
from app.services.booking_store import BookingStore, paid_total, payment_status_case
from app.services.side_effects import WorkflowResult, run_side_effects
from app.services.transaction_recorder import transaction_recorder
from app.utils.local_time import business_now, combine_local, ensure_aware

logger = logging.getLogger(__name__)


class BookingService:
    """Booking lifecycle outside the request/approve workflows."""

    async def create_booking(
        self, db: AsyncSession, actor: Actor, data: BookingCreate
    ) -> WorkflowResult:
        """Create a Pending booking for the calling customer.

        The zero-amount placeholder payment is written in the same commit.
        Marking the car Rented happens afterwards and is best effort.

        Args:
            db: Database session
            actor: Customer making the booking
            data: Canonical booking request

        Returns:
            WorkflowResult for the new booking
        """
        assert_permission(actor, Permission.CREATE_BOOKING)
        if actor.role != ActorRole.CUSTOMER:
            raise AuthorizationError("Only customers can create bookings")

        customer = await db.get(Customer, actor.id)
        if not customer:
            raise NotFoundError("Customer", actor.id)

        store = BookingStore(db)
        car = await store.get_car(data.car_id)
        if car.car_status != CarStatus.AVAILABLE:
            raise VehicleNotAvailable(f"{car.display_name} is not available for booking")

        fields = data.to_fields()
        if fields["driver_id"]:
            await self._get_driver(db, fields["driver_id"])

        if fields["total_amount"] is None:
            fields["total_amount"] = rental_cost(
                fields["start_date"], fields["end_date"], car.rent_price
            )
        if fields["booking_date"] is None:
            fields["booking_date"] = business_now()

        booking = Booking(
            customer_id=actor.id,
            **fields,
            balance=fields["total_amount"],
            booking_status=BookingStatus.PENDING.value,
            pending_request=PendingRequest.NONE.value,
            payment_status=payment_status_for(fields["total_amount"]).value,
        )
        await store.add(booking)
        await store.add(
            Payment(
                booking_id=booking.id,
                customer_id=actor.id,
                amount=0,
                description=PLACEHOLDER_DESCRIPTION,
            )
        )
        await db.commit()
        await db.refresh(booking)
        logger.info(
            f"Booking {booking.id} created by customer {actor.id} for car {car.id} "
            f"(total {booking.total_amount})"
        )

        result = WorkflowResult(booking=booking, message="Booking created successfully")
        return await run_side_effects(
            db,
            result,
            [
                (
                    "vehicle_availability",
                    lambda: availability_service.on_booking_activated(db, booking.car_id),
                ),
            ],
        )

    async def update_my_booking(
        self, db: AsyncSession, booking_id: int, actor: Actor, data: BookingUpdate
    ) -> WorkflowResult:
        """Let a customer edit their own booking while it is still Pending."""
        assert_permission(actor, Permission.UPDATE_OWN_BOOKING)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)
        assert_owner(actor, booking.customer_id, "update")

        if booking.booking_status != BookingStatus.PENDING:
            raise InvalidBookingStatus("Only pending bookings can be updated")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No fields to update")

        values = {}
        for name in ("purpose", "pickup_loc", "dropoff_loc"):
            if changes.get(name) is not None:
                values[name] = changes[name]

        start_date = ensure_aware(changes.get("start_date") or booking.start_date)
        end_date = ensure_aware(changes.get("end_date") or booking.end_date)
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        if changes.get("start_date"):
            values["start_date"] = start_date
        if changes.get("end_date"):
            values["end_date"] = end_date
        if changes.get("pickup_time"):
            values["pickup_time"] = combine_local(start_date, changes["pickup_time"])
        if changes.get("dropoff_time"):
            values["dropoff_time"] = combine_local(end_date, changes["dropoff_time"])

        if changes.get("is_self_drive") is not None:
            values["is_self_drive"] = changes["is_self_drive"]
        if changes.get("is_self_drive"):
            values["driver_id"] = None
        elif changes.get("driver_id"):
            await self._get_driver(db, changes["driver_id"])
            values["driver_id"] = changes["driver_id"]

        if changes.get("total_amount"):
            total = changes["total_amount"]
            values["total_amount"] = total
            values["balance"] = total - paid_total()
            values["payment_status"] = payment_status_case(total - paid_total())

        await store.apply(
            booking,
            guards={"booking_status": BookingStatus.PENDING.value},
            values=values,
        )
        car = await store.get_car(booking.car_id)
        logger.info(f"Booking {booking.id} updated by customer {actor.id}")
        return WorkflowResult(
            booking=booking,
            message=f"Booking for {car.make} {car.model} has been updated",
        )

    async def release(self, db: AsyncSession, booking_id: int, actor: Actor) -> WorkflowResult:
        """Hand the car over: Confirmed → In Progress."""
        assert_permission(actor, Permission.PROGRESS_BOOKING)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)
        assert_booking_transition(booking.booking_status, BookingStatus.IN_PROGRESS)
        if booking.pending_request != PendingRequest.NONE:
            raise InvalidBookingStatus(
                f"Resolve the pending {booking.pending_request} request before releasing the car"
            )

        await store.apply(
            booking,
            guards={
                "booking_status": BookingStatus.CONFIRMED.value,
                "pending_request": PendingRequest.NONE.value,
            },
            values={
                "booking_status": BookingStatus.IN_PROGRESS.value,
                "is_released": True,
                "admin_id": actor.id,
            },
        )
        logger.info(f"Booking {booking.id} released by {actor.id}")

        result = WorkflowResult(booking=booking, message="Car released to customer")
        return await run_side_effects(
            db,
            result,
            [
                (
                    "vehicle_availability",
                    lambda: availability_service.on_booking_activated(db, booking.car_id),
                ),
            ],
        )

    async def complete(self, db: AsyncSession, booking_id: int, actor: Actor) -> WorkflowResult:
        """Car returned: In Progress → Completed."""
        assert_permission(actor, Permission.PROGRESS_BOOKING)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)
        assert_booking_transition(booking.booking_status, BookingStatus.COMPLETED)
        if booking.pending_request != PendingRequest.NONE:
            raise InvalidBookingStatus(
                f"Resolve the pending {booking.pending_request} request before completing the booking"
            )

        await store.apply(
            booking,
            guards={
                "booking_status": BookingStatus.IN_PROGRESS.value,
                "pending_request": PendingRequest.NONE.value,
            },
            values={
                "booking_status": BookingStatus.COMPLETED.value,
                "is_returned": True,
                "admin_id": actor.id,
            },
        )
        logger.info(f"Booking {booking.id} completed by {actor.id}")

        result = WorkflowResult(booking=booking, message="Booking completed")
        return await run_side_effects(
            db,
            result,
            [
                (
                    "vehicle_availability",
                    lambda: availability_service.on_booking_resolved(db, booking.car_id),
                ),
                (
                    "completion_record",
                    lambda: transaction_recorder.record_completion(db, booking),
                ),
            ],
        )

    async def delete_booking(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> WorkflowResult:
        """Remove a booking with its payments and audit rows, freeing the car."""
        assert_permission(actor, Permission.DELETE_BOOKING)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)
        car_id = booking.car_id
        held_car = is_active(booking.booking_status)
        db.expunge(booking)

        # Bulk statements skip the append-only mapper guards
        for model in (Payment, BookingExtension, BookingTransaction):
            await db.execute(
                delete(model)
                .where(model.booking_id == booking_id)
                .execution_options(synchronize_session=False)
            )
        await db.execute(
            delete(Booking)
            .where(Booking.id == booking_id)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.warning(f"Booking {booking_id} deleted by {actor.role.value} {actor.id}")

        result = WorkflowResult(booking=booking, message="Booking deleted successfully")
        if not held_car:
            # A cancelled or completed booking already released its car
            return result
        return await run_side_effects(
            db,
            result,
            [
                (
                    "vehicle_availability",
                    lambda: availability_service.on_booking_resolved(db, car_id),
                ),
            ],
        )

    async def admin_update(
        self, db: AsyncSession, booking_id: int, actor: Actor, data: BookingAdminUpdate
    ) -> WorkflowResult:
        """Write raw field values, bypassing workflow guards.

        Only the balance follows ``total_amount``; status and request
        invariants are the caller's responsibility.
        """
        assert_permission(actor, Permission.EDIT_BOOKING_FIELDS)
        store = BookingStore(db)
        booking = await store.get(booking_id, for_update=True)

        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if not values:
            raise ValidationError("No fields to update")
        if values.get("total_amount") is not None:
            total = values["total_amount"]
            values["balance"] = total - paid_total()
            values.setdefault("payment_status", payment_status_case(total - paid_total()))
        values["admin_id"] = actor.id

        logger.warning(
            f"Unguarded edit of booking {booking.id} by {actor.id}: {sorted(values)}"
        )
        await store.apply(booking, guards={}, values=values)
        return WorkflowResult(booking=booking, message="Booking updated")

    async def get_booking(
        self, db: AsyncSession, booking_id: int, actor: Actor
    ) -> tuple[Booking, list[int]]:
        """A booking and its payment amounts, for its owner or staff."""
        store = BookingStore(db)
        booking = await store.get(booking_id)
        if not actor.is_staff:
            assert_owner(actor, booking.customer_id, "view")
        return booking, await store.payment_amounts(booking.id)

    async def list_bookings(
        self,
        db: AsyncSession,
        actor: Actor,
        status: BookingStatus | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[tuple[Booking, list[int]]], int]:
        """All bookings, newest first, with payment amounts and the total count."""
        assert_permission(actor, Permission.VIEW_ALL_BOOKINGS)
        query = select(Booking)
        count_query = select(func.count(Booking.id))
        if status:
            query = query.where(Booking.booking_status == status.value)
            count_query = count_query.where(Booking.booking_status == status.value)

        total = (await db.execute(count_query)).scalar_one()
        result = await db.execute(
            query.order_by(Booking.created_at.desc(), Booking.id.desc()).offset(skip).limit(limit)
        )
        bookings = list(result.scalars().all())
        return await self._with_payments(db, bookings), total

    async def my_bookings(
        self, db: AsyncSession, actor: Actor
    ) -> list[tuple[Booking, list[int]]]:
        assert_permission(actor, Permission.VIEW_OWN_BOOKINGS)
        result = await db.execute(
            select(Booking)
            .where(Booking.customer_id == actor.id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return await self._with_payments(db, list(result.scalars().all()))

    async def _with_payments(
        self, db: AsyncSession, bookings: list[Booking]
    ) -> list[tuple[Booking, list[int]]]:
        if not bookings:
            return []
        result = await db.execute(
            select(Payment.booking_id, Payment.amount).where(
                Payment.booking_id.in_([b.id for b in bookings])
            )
        )
        amounts = defaultdict(list)
        for booking_id, amount in result.all():
            amounts[booking_id].append(amount)
        return [(booking, amounts[booking.id]) for booking in bookings]

    async def _get_driver(self, db: AsyncSession, driver_id: int) -> Driver:
        driver = await db.get(Driver, driver_id)
        if not driver:
            raise NotFoundError("Driver", driver_id)
        return driver


booking_service = BookingService()
