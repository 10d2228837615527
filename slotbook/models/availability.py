"""
Availability model: one row per (product, calendar date).

Key design decisions:
- Vacancy and status are NOT columns. They are derived on every read from
  product capacity and a live count of booked units (see services/vacancy.py).
- Unique constraint on (product_id, date) makes replenishment reject
  duplicate dates instead of silently doubling inventory.
- The row doubles as the lock target that serializes reservations.
"""

import uuid

from sqlalchemy import Column, Date, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class Availability(Base, TimestampMixin):
    __tablename__ = "availability"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    date = Column(Date, nullable=False)

    product = relationship("Product", back_populates="availabilities", lazy="raise")
    bookings = relationship("Booking", back_populates="availability", lazy="raise")

    __table_args__ = (
        # Also serves product/date range lookups
        UniqueConstraint("product_id", "date", name="uq_availability_product_date"),
    )

    def __repr__(self) -> str:
        return f"<Availability(id={self.id}, product={self.product_id}, date={self.date})>"
