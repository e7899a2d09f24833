"""Booking-related database models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime, utcnow
from app.domain.booking_state import BookingStatus, PendingRequest
from app.domain.ledger import PaymentStatus


class Booking(Base):
    """Booking model.

    ``balance`` is denormalised: total_amount minus the sum of the booking's
    payments. Only the workflow services may change status, pending request
    or money fields.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.id"), nullable=False, index=True
    )
    car_id: Mapped[int] = mapped_column(Integer, ForeignKey("cars.id"), nullable=False, index=True)
    driver_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"))
    admin_id: Mapped[int | None] = mapped_column(Integer)  # last staff actor

    # Request
    booking_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    purpose: Mapped[str] = mapped_column(Text, default="Not specified")

    # Rental window
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    pickup_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    dropoff_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Logistics
    pickup_loc: Mapped[str | None] = mapped_column(Text)
    dropoff_loc: Mapped[str | None] = mapped_column(Text)
    is_self_drive: Mapped[bool] = mapped_column(Boolean, default=True)
    is_deliver: Mapped[bool] = mapped_column(Boolean, default=False)
    deliver_loc: Mapped[str | None] = mapped_column(Text)

    # Status
    booking_status: Mapped[str] = mapped_column(
        String(20), default=BookingStatus.PENDING.value, nullable=False, index=True
    )  # Pending, Confirmed, In Progress, Completed, Cancelled
    pending_request: Mapped[str] = mapped_column(
        String(20), default=PendingRequest.NONE.value, nullable=False, index=True
    )  # none, cancellation, extension
    proposed_end_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    payment_confirmed_pending_apply: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    is_released: Mapped[bool] = mapped_column(Boolean, default=False)
    is_returned: Mapped[bool] = mapped_column(Boolean, default=False)

    # Money (whole currency units)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payment_status: Mapped[str] = mapped_column(
        String(10), default=PaymentStatus.UNPAID.value, nullable=False
    )  # Unpaid, Paid

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, default=utcnow, onupdate=utcnow
    )

    @property
    def cancel_requested(self) -> bool:
        return self.pending_request == PendingRequest.CANCELLATION

    @property
    def extend_requested(self) -> bool:
        return self.pending_request == PendingRequest.EXTENSION


class BookingExtension(Base):
    """Approved extension (append-only)."""

    __tablename__ = "booking_extensions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )
    old_end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    new_end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    approved_by: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)


class BookingTransaction(Base):
    """Terminal resolution of a booking (append-only)."""

    __tablename__ = "booking_transactions"
    __table_args__ = (
        CheckConstraint(
            "(completion_date IS NULL) <> (cancellation_date IS NULL)",
            name="ck_transaction_single_resolution",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(Integer, ForeignKey("customers.id"), nullable=False)
    car_id: Mapped[int] = mapped_column(Integer, ForeignKey("cars.id"), nullable=False)
    completion_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    cancellation_date: Mapped[datetime | None] = mapped_column(UTCDateTime)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
