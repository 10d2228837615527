"""
Tests for availability replenishment.
"""

from datetime import date, timedelta

import pytest
from sqlalchemy import func, select

from slotbook.core.errors import UnavailableError
from slotbook.models import Availability
from slotbook.services import replenishment_service
from slotbook.services.replenishment_service import add_years, plan_window, replenish_all

TODAY = date(2026, 10, 18)
WINDOW_END = date(2027, 10, 18)


async def _dates(session_factory, product_id) -> list[date]:
    async with session_factory() as db:
        result = await db.execute(
            select(Availability.date)
            .where(Availability.product_id == product_id)
            .order_by(Availability.date)
        )
        return list(result.scalars().all())


def test_add_years():
    assert add_years(date(2026, 10, 18), 1) == date(2027, 10, 18)
    assert add_years(date(2028, 2, 29), 1) == date(2029, 2, 28)


def test_window_without_existing_availability():
    """No availability yet: the window starts today (day after yesterday)."""
    dates = plan_window(None, TODAY)
    assert dates[0] == TODAY
    assert dates[-1] == WINDOW_END
    assert len(dates) == (WINDOW_END - TODAY).days + 1


def test_window_continues_after_latest():
    dates = plan_window(date(2027, 10, 10), TODAY)
    assert dates == [date(2027, 10, 10) + timedelta(days=n) for n in range(1, 9)]


def test_window_already_full():
    assert plan_window(WINDOW_END, TODAY) == []
    assert plan_window(WINDOW_END + timedelta(days=3), TODAY) == []


@pytest.mark.asyncio
async def test_replenish_fills_one_year(session_factory, product):
    report = await replenish_all(session_factory, today=TODAY)

    dates = await _dates(session_factory, product.id)
    assert dates[0] == TODAY
    assert dates[-1] == WINDOW_END
    assert len(dates) == len(set(dates)) == (WINDOW_END - TODAY).days + 1
    assert report.inserted == {product.id: len(dates)}
    assert report.failed == {}


@pytest.mark.asyncio
async def test_replenish_twice_creates_no_duplicates(session_factory, product):
    await replenish_all(session_factory, today=TODAY)
    first_run = await _dates(session_factory, product.id)

    again = await replenish_all(session_factory, today=TODAY)
    assert again.inserted == {product.id: 0}
    assert await _dates(session_factory, product.id) == first_run

    next_day = await replenish_all(session_factory, today=TODAY + timedelta(days=1))
    assert next_day.inserted == {product.id: 1}
    dates = await _dates(session_factory, product.id)
    assert dates[-1] == WINDOW_END + timedelta(days=1)
    assert dates[-1] > first_run[-1]
    assert len(dates) == len(set(dates))


@pytest.mark.asyncio
async def test_replenish_extends_existing_horizon(session_factory, product, make_availability):
    await make_availability(product, date(2027, 9, 30))

    report = await replenish_all(session_factory, today=TODAY)

    assert report.inserted[product.id] == (WINDOW_END - date(2027, 9, 30)).days
    dates = await _dates(session_factory, product.id)
    assert dates[0] == date(2027, 9, 30)
    assert dates[1] == date(2027, 10, 1)


@pytest.mark.asyncio
async def test_replenish_continues_after_product_failure(session_factory, make_product, monkeypatch):
    """One product's failure is reported; the others are still replenished."""
    broken = await make_product(name="Broken Tour")
    healthy = await make_product(name="Healthy Tour")

    real_insert = replenishment_service.insert_availabilities

    async def flaky_insert(db, records):
        records = list(records)
        if records and records[0].product_id == broken.id:
            raise UnavailableError("insert availabilities")
        return await real_insert(db, records)

    monkeypatch.setattr(replenishment_service, "insert_availabilities", flaky_insert)

    report = await replenish_all(session_factory, today=TODAY)

    assert set(report.failed) == {broken.id}
    assert report.inserted[healthy.id] == (WINDOW_END - TODAY).days + 1
    assert await _dates(session_factory, broken.id) == []

    async with session_factory() as db:
        total = await db.scalar(select(func.count()).select_from(Availability))
    assert total == report.total_inserted
