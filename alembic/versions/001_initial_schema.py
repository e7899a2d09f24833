"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-02-02

Creates the tables for the rental booking engine:
- Fleet directory (cars, customers, drivers)
- Bookings
- Payments
- Booking audit history (extensions, transactions)
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== DIRECTORY ====================
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100)),
        sa.Column("email", sa.String(255), unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100)),
        sa.Column("driver_license_no", sa.String(50)),
    )

    op.create_table(
        "cars",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("make", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False),
        sa.Column("year", sa.Integer),
        sa.Column("license_plate", sa.String(20), unique=True),
        sa.Column("rent_price", sa.Integer, nullable=False, server_default="0"),
        sa.Column("car_status", sa.String(20), nullable=False, server_default="Available"),
        sa.Column("car_img_url", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False, index=True),
        sa.Column("car_id", sa.Integer, sa.ForeignKey("cars.id"), nullable=False, index=True),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id")),
        sa.Column("admin_id", sa.Integer),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("purpose", sa.Text),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pickup_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("dropoff_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pickup_loc", sa.Text),
        sa.Column("dropoff_loc", sa.Text),
        sa.Column("is_self_drive", sa.Boolean, server_default=sa.true()),
        sa.Column("is_deliver", sa.Boolean, server_default=sa.false()),
        sa.Column("deliver_loc", sa.Text),
        sa.Column("booking_status", sa.String(20), nullable=False, server_default="Pending", index=True),
        sa.Column("pending_request", sa.String(20), nullable=False, server_default="none", index=True),
        sa.Column("proposed_end_date", sa.DateTime(timezone=True)),
        sa.Column("payment_confirmed_pending_apply", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("is_released", sa.Boolean, server_default=sa.false()),
        sa.Column("is_returned", sa.Boolean, server_default=sa.false()),
        sa.Column("total_amount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(10), nullable=False, server_default="Unpaid"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== PAYMENTS ====================
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(30)),
        sa.Column("paid_date", sa.DateTime(timezone=True)),
        sa.Column("description", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== HISTORY ====================
    op.create_table(
        "booking_extensions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("old_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("new_end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approved_by", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "booking_transactions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("booking_id", sa.Integer, sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("car_id", sa.Integer, sa.ForeignKey("cars.id"), nullable=False),
        sa.Column("completion_date", sa.DateTime(timezone=True)),
        sa.Column("cancellation_date", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "(completion_date IS NULL) <> (cancellation_date IS NULL)",
            name="ck_transaction_single_resolution",
        ),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("booking_transactions")
    op.drop_table("booking_extensions")
    op.drop_table("payments")
    op.drop_table("bookings")
    op.drop_table("cars")
    op.drop_table("drivers")
    op.drop_table("customers")
