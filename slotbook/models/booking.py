"""
Booking and Unit models.

Key design decisions:
- A booking is created together with its units in one transaction and the
  unit count never changes afterwards.
- Status moves RESERVED -> CONFIRMED exactly once; the CHECK constraint
  keeps unknown states out at the DB level.
- Units live in the `tickets` table. `content` stays NULL until the booking
  is confirmed, `position` keeps unit order stable across reads.
"""

import uuid
from enum import Enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Uuid, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship

from slotbook.db.base import Base, TimestampMixin


class BookingStatus(str, Enum):
    RESERVED = "RESERVED"
    CONFIRMED = "CONFIRMED"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    availability_id = Column(Uuid, ForeignKey("availability.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.RESERVED.value)

    availability = relationship("Availability", back_populates="bookings", lazy="raise")
    units = relationship(
        "Unit",
        back_populates="booking",
        order_by="Unit.position",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("status IN ('RESERVED', 'CONFIRMED')", name="check_booking_status"),
    )

    @property
    def product_id(self) -> uuid.UUID:
        return self.availability.product_id

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, availability={self.availability_id}, status={self.status})>"


class Unit(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False)
    position = Column(Integer, nullable=False)
    content = Column(Text, nullable=True)

    booking = relationship("Booking", back_populates="units", lazy="raise")

    __table_args__ = (
        UniqueConstraint("booking_id", "position", name="uq_ticket_booking_position"),
    )

    @property
    def ticket(self) -> str | None:
        return self.content

    def __repr__(self) -> str:
        return f"<Unit(id={self.id}, booking={self.booking_id}, position={self.position})>"
