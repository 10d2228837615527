"""
Availability store: point, range and latest lookups plus bulk creation.

Every read joins products (for capacity) and a grouped count of booked units,
so the returned vacancy reflects the committed booking count at the moment of
the query. Nothing here is cached.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.core.errors import (
    STORE_ERRORS,
    InvalidParam,
    InvalidRequestError,
    NotFoundError,
    store_error,
)
from slotbook.core.logging import get_logger
from slotbook.db.session import atomic
from slotbook.models.availability import Availability
from slotbook.models.product import Product
from slotbook.services.vacancy import Vacancy, booked_units_subquery, derive_vacancy

logger = get_logger(__name__)


@dataclass(frozen=True)
class AvailabilityView:
    """An availability record with its derived vacancy."""

    id: uuid.UUID
    product_id: uuid.UUID
    local_date: date
    capacity: int
    booked_units: int

    @property
    def vacancy(self) -> Vacancy:
        return derive_vacancy(self.capacity, self.booked_units)

    @property
    def vacancies(self) -> int:
        return self.vacancy.vacancies

    @property
    def status(self) -> str:
        return self.vacancy.status

    @property
    def available(self) -> bool:
        return self.vacancy.available


@dataclass(frozen=True)
class NewAvailability:
    product_id: uuid.UUID
    local_date: date


def _availability_query():
    booked = booked_units_subquery()
    return (
        select(
            Availability.id,
            Availability.product_id,
            Availability.date,
            Product.capacity,
            func.coalesce(booked.c.booked_units, 0),
        )
        .join(Product, Product.id == Availability.product_id)
        .outerjoin(booked, booked.c.availability_id == Availability.id)
    )


def _to_view(row) -> AvailabilityView:
    availability_id, product_id, local_date, capacity, booked_units = row
    return AvailabilityView(
        id=availability_id,
        product_id=product_id,
        local_date=local_date,
        capacity=capacity,
        booked_units=booked_units,
    )


async def get_availability(
    db: AsyncSession,
    product_id: uuid.UUID,
    local_date: date,
) -> Optional[AvailabilityView]:
    """Availability for one product on one date, or None."""
    try:
        result = await db.execute(
            _availability_query().where(
                Availability.product_id == product_id,
                Availability.date == local_date,
            )
        )
        row = result.one_or_none()
    except STORE_ERRORS as exc:
        raise store_error(exc, "get availability") from exc
    return _to_view(row) if row else None


async def get_availability_range(
    db: AsyncSession,
    product_id: uuid.UUID,
    start: date,
    end: date,
) -> list[AvailabilityView]:
    """Availability for a product between two dates (inclusive), oldest first."""
    try:
        result = await db.execute(
            _availability_query()
            .where(
                Availability.product_id == product_id,
                Availability.date >= start,
                Availability.date <= end,
            )
            .order_by(Availability.date.asc())
        )
        rows = result.all()
    except STORE_ERRORS as exc:
        raise store_error(exc, "get availability range") from exc
    return [_to_view(row) for row in rows]


async def get_availability_by_id(db: AsyncSession, availability_id: uuid.UUID) -> AvailabilityView:
    try:
        result = await db.execute(_availability_query().where(Availability.id == availability_id))
        row = result.one_or_none()
    except STORE_ERRORS as exc:
        raise store_error(exc, "get availability by id") from exc

    if row is None:
        raise NotFoundError("availability", availability_id)
    return _to_view(row)


async def get_latest_availability(db: AsyncSession, product_id: uuid.UUID) -> Optional[AvailabilityView]:
    """The product's availability with the greatest date, or None if it has none."""
    try:
        result = await db.execute(
            _availability_query()
            .where(Availability.product_id == product_id)
            .order_by(Availability.date.desc())
            .limit(1)
        )
        row = result.one_or_none()
    except STORE_ERRORS as exc:
        raise store_error(exc, "get latest availability") from exc
    return _to_view(row) if row else None


async def insert_availabilities(db: AsyncSession, records: Iterable[NewAvailability]) -> int:
    """
    Create availability rows with no bookings, all or nothing.

    A (product, date) pair that already exists fails the whole batch.
    Returns the number of rows created.
    """
    rows = [
        {"id": uuid.uuid4(), "product_id": record.product_id, "date": record.local_date}
        for record in records
    ]
    if not rows:
        return 0

    try:
        async with atomic(db, "insert availabilities"):
            await db.execute(insert(Availability), rows)
    except IntegrityError as exc:
        logger.warning("availability_insert_conflict", rows=len(rows), error=str(exc.orig))
        raise InvalidRequestError(
            InvalidParam(
                name="localDate",
                reason="availability already exists for one or more product dates",
            )
        ) from exc
    except STORE_ERRORS as exc:
        raise store_error(exc, "insert availabilities") from exc

    logger.info(
        "availabilities_inserted",
        rows=len(rows),
        first_date=str(rows[0]["date"]),
        last_date=str(rows[-1]["date"]),
    )
    return len(rows)
