"""Initial schema: products, availability, bookings, tickets.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Products table
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("capacity > 0", name="check_product_capacity_positive"),
    )

    # Availability table. No vacancy column: vacancy is counted from tickets.
    op.create_table(
        "availability",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        *_timestamps(),
        # UNIQUE (product_id, date): replenishment can never create the same
        # day twice, and the backing index serves every availability lookup
        # (point, range, latest) which all filter on product_id first.
        sa.UniqueConstraint("product_id", "date", name="uq_availability_product_date"),
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("availability_id", sa.Uuid(), sa.ForeignKey("availability.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'RESERVED'")),
        *_timestamps(),
        sa.CheckConstraint("status IN ('RESERVED', 'CONFIRMED')", name="check_booking_status"),
    )
    # The capacity check counts units per availability on every reservation
    op.create_index("ix_bookings_availability_id", "bookings", ["availability_id"])

    # Tickets table (one row per booked unit)
    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("booking_id", sa.Uuid(), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("booking_id", "position", name="uq_ticket_booking_position"),
    )


def downgrade() -> None:
    op.drop_table("tickets")
    op.drop_index("ix_bookings_availability_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("availability")
    op.drop_table("products")
