"""
Capacity invariant under concurrent reservations.

Each simulated client uses its own session (its own connection and
transaction), the same way concurrent API requests do.
"""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from slotbook.core.errors import InvalidRequestError
from slotbook.models import Booking, Unit
from slotbook.services.availability_service import get_availability_by_id
from slotbook.services.booking_service import reserve


async def _reserve_one(session_factory, availability_id, units: int = 1):
    async with session_factory() as db:
        view = await get_availability_by_id(db, availability_id)
        return await reserve(db, view, units)


@pytest.mark.asyncio
async def test_concurrent_reservations_never_overbook(session_factory, make_product, make_availability):
    """30 concurrent 1-unit reservations against capacity 10: exactly 10 succeed."""
    capacity, attempts = 10, 30
    product = await make_product(capacity=capacity)
    availability = await make_availability(product)

    results = await asyncio.gather(
        *(_reserve_one(session_factory, availability.id) for _ in range(attempts)),
        return_exceptions=True,
    )

    succeeded = [r for r in results if not isinstance(r, BaseException)]
    rejected = [r for r in results if isinstance(r, InvalidRequestError)]
    assert len(succeeded) == capacity
    assert len(rejected) == attempts - capacity

    async with session_factory() as db:
        booked = await db.scalar(
            select(func.count(Unit.id))
            .join(Booking, Booking.id == Unit.booking_id)
            .where(Booking.availability_id == availability.id)
        )
        view = await get_availability_by_id(db, availability.id)

    assert booked == capacity
    assert view.vacancies == 0
    assert view.status == "SOLD_OUT"


@pytest.mark.asyncio
async def test_concurrent_mixed_sizes_stay_within_capacity(session_factory, make_product, make_availability):
    """Multi-unit requests racing for the same date never exceed capacity."""
    product = await make_product(capacity=7)
    availability = await make_availability(product)

    results = await asyncio.gather(
        *(_reserve_one(session_factory, availability.id, units=n) for n in (3, 3, 3, 2, 2, 1)),
        return_exceptions=True,
    )

    assert all(
        isinstance(r, InvalidRequestError) for r in results if isinstance(r, BaseException)
    )
    booked = sum(len(r.units) for r in results if not isinstance(r, BaseException))
    assert booked <= 7

    async with session_factory() as db:
        view = await get_availability_by_id(db, availability.id)
    assert view.vacancies == 7 - booked
    assert view.vacancies >= 0


@pytest.mark.asyncio
async def test_concurrent_requests_over_http(client: AsyncClient, make_product, make_availability):
    """Same invariant through the API: 20 concurrent requests, capacity 5."""
    product = await make_product(capacity=5)
    availability = await make_availability(product)
    body = {"productId": str(product.id), "availabilityId": str(availability.id), "units": 1}

    responses = await asyncio.gather(*(client.post("/api/v1/bookings", json=body) for _ in range(20)))

    codes = [r.status_code for r in responses]
    assert codes.count(201) == 5
    assert codes.count(400) == 15

    response = await client.post(
        "/api/v1/availability",
        json={"productId": str(product.id), "localDate": availability.date.isoformat()},
    )
    assert response.json()[0]["vacancies"] == 0
