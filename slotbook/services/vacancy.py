"""
Vacancy calculation.

Vacancy is never stored. It is always `capacity - booked_units`, where
booked_units is a live COUNT of unit rows whose booking references the
availability record. Callers that act on the number (the reservation engine)
must take the count inside the same transaction as the write.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.models.booking import Booking, Unit

STATUS_AVAILABLE = "AVAILABLE"
STATUS_SOLD_OUT = "SOLD_OUT"


@dataclass(frozen=True)
class Vacancy:
    vacancies: int
    status: str

    @property
    def available(self) -> bool:
        return self.status == STATUS_AVAILABLE


def derive_vacancy(capacity: int, booked_units: int) -> Vacancy:
    vacancies = capacity - booked_units
    status = STATUS_AVAILABLE if vacancies > 0 else STATUS_SOLD_OUT
    return Vacancy(vacancies=vacancies, status=status)


def booked_units_subquery():
    """Booked unit count per availability id, for outer-joining onto reads."""
    return (
        select(
            Booking.availability_id.label("availability_id"),
            func.count(Unit.id).label("booked_units"),
        )
        .join(Unit, Unit.booking_id == Booking.id)
        .group_by(Booking.availability_id)
        .subquery()
    )


async def count_booked_units(db: AsyncSession, availability_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Unit.id))
        .select_from(Unit)
        .join(Booking, Booking.id == Unit.booking_id)
        .where(Booking.availability_id == availability_id)
    )
    return result.scalar_one()
