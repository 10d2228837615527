"""
Product model: a bookable offering with a fixed per-day capacity.

Capacity is the only input to vacancy that is not derived from bookings.
Products are treated as immutable once created.
"""

import uuid

from sqlalchemy import Column, Integer, String, Uuid, CheckConstraint
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False)

    availabilities = relationship("Availability", back_populates="product", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_product_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name}, capacity={self.capacity})>"
