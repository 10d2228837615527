"""
Availability replenishment.

Keeps roughly one year of future availability per product. For each product
the window starts after its latest existing date (or at yesterday when it has
none) and ends one year after today, with all dates taken in UTC so that
hosts in different time zones agree on "today".

Products are processed independently: one product failing is logged and
reported, and the run continues with the next product.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slotbook.core.config import get_settings
from slotbook.core.errors import ServiceError
from slotbook.core.logging import get_logger
from slotbook.core.metrics import availability_rows_inserted, replenishment_failures
from slotbook.services.availability_service import (
    NewAvailability,
    get_latest_availability,
    insert_availabilities,
)
from slotbook.services.product_service import list_products

logger = get_logger(__name__)
settings = get_settings()


@dataclass
class ReplenishmentReport:
    inserted: dict[uuid.UUID, int] = field(default_factory=dict)
    failed: dict[uuid.UUID, str] = field(default_factory=dict)

    @property
    def total_inserted(self) -> int:
        return sum(self.inserted.values())


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def plan_window(latest: Optional[date], today: date, years: int = 1) -> list[date]:
    """Dates strictly after the window start, up to and including the window end."""
    start = latest if latest is not None else today - timedelta(days=1)
    end = add_years(today, years)
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(1, days + 1)]


async def replenish_product(db: AsyncSession, product_id: uuid.UUID, today: date) -> int:
    """Extend one product's availability to the window end. Returns rows created."""
    latest = await get_latest_availability(db, product_id)
    dates = plan_window(
        latest.local_date if latest else None,
        today,
        years=settings.REPLENISHMENT_WINDOW_YEARS,
    )
    if not dates:
        logger.debug("replenishment_up_to_date", product_id=str(product_id))
        return 0

    inserted = await insert_availabilities(
        db, [NewAvailability(product_id=product_id, local_date=day) for day in dates]
    )
    availability_rows_inserted.inc(inserted)
    return inserted


async def replenish_all(
    session_factory: async_sessionmaker[AsyncSession],
    today: Optional[date] = None,
) -> ReplenishmentReport:
    """Run one replenishment pass over every product."""
    today = today or utc_today()
    report = ReplenishmentReport()

    async with session_factory() as db:
        products = await list_products(db)

    logger.info("replenishment_started", products=len(products), today=str(today))

    for product in products:
        async with session_factory() as db:
            try:
                inserted = await replenish_product(db, product.id, today)
            except ServiceError as exc:
                replenishment_failures.inc()
                logger.error(
                    "replenishment_product_failed",
                    product_id=str(product.id),
                    error=str(exc),
                )
                report.failed[product.id] = str(exc)
                continue
        report.inserted[product.id] = inserted

    logger.info(
        "replenishment_finished",
        rows_inserted=report.total_inserted,
        products_failed=len(report.failed),
    )
    return report
