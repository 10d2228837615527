"""
Booking service: capacity-safe reservation and one-way confirmation.

CONCURRENCY STRATEGY: Row Lock + Recount in One Transaction
===========================================================

Problem:
  Two clients reserve against the same availability at once. Both read
  vacancies=3, both insert 3 units, and the date ends up 3 units over capacity.
  Reading the vacancy and inserting the units as separate steps is a classic
  check-then-act race.

Solution:
  The capacity check and the insert happen inside one transaction that holds
  a lock on the availability row:

  1. SELECT ... FROM availability WHERE id = :id FOR UPDATE
     (concurrent reservations for the same date queue here)
  2. COUNT units booked against the availability (fresh statement, so under
     READ COMMITTED it sees every unit committed by the previous lock holder)
  3. Reject if capacity - booked < requested
  4. INSERT booking + N units, COMMIT (releases the lock)

  This approach:
  - Serializes only reservations for the same availability row; other dates
    and products proceed in parallel
  - Needs no retry loop: the check runs while the lock is held, so it cannot
    go stale before the insert
  - Keeps the booked count in exactly one place, the tickets table

  The vacancy on the AvailabilityView passed in is only used to fail fast.
  It is always re-verified under the lock.

Alternative approaches considered:
  - Optimistic version column: requires a stored counter on availability,
    which can drift from the real unit count.
  - SERIALIZABLE isolation: correct, but conflicts surface as serialization
    failures that need a retry loop around the whole unit of work.
"""

import time
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from slotbook.core.errors import (
    STORE_ERRORS,
    InternalError,
    InvalidParam,
    InvalidRequestError,
    NotFoundError,
    ServiceError,
    store_error,
)
from slotbook.core.logging import get_logger
from slotbook.core.metrics import record_confirmation, record_reservation_attempt, reservation_latency
from slotbook.db.session import atomic
from slotbook.models.availability import Availability
from slotbook.models.booking import Booking, BookingStatus, Unit
from slotbook.models.product import Product
from slotbook.services.availability_service import AvailabilityView
from slotbook.services.interfaces.ticketing import TicketIssuer
from slotbook.services.ticketing_factory import get_ticket_issuer
from slotbook.services.vacancy import count_booked_units, derive_vacancy

logger = get_logger(__name__)


def _over_capacity(units: int, vacancies: int) -> InvalidRequestError:
    return InvalidRequestError(
        InvalidParam(
            name="units",
            reason=f"units ({units}) is greater than availability vacancies ({max(vacancies, 0)})",
        )
    )


async def get_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    """Load a booking with its ordered units and owning availability."""
    try:
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .options(selectinload(Booking.units), joinedload(Booking.availability))
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
    except STORE_ERRORS as exc:
        raise store_error(exc, "get booking") from exc

    if booking is None:
        raise NotFoundError("booking", booking_id)
    return booking


async def reserve(
    db: AsyncSession,
    availability: AvailabilityView,
    units: int,
    product_id: Optional[uuid.UUID] = None,
) -> Booking:
    """
    Reserve `units` against an availability record.

    Creates a RESERVED booking with `units` ticket-less units, atomically.
    Raises InvalidRequestError when units <= 0, when product_id does not own
    the availability, or when capacity would be exceeded.
    """
    if units <= 0:
        raise InvalidRequestError(InvalidParam(name="units", reason="units must be greater than 0"))

    if product_id is not None and product_id != availability.product_id:
        raise InvalidRequestError(
            InvalidParam(name="productId", reason="availability does not belong to the product")
        )

    if units > availability.vacancies:
        record_reservation_attempt("rejected")
        logger.info(
            "booking_rejected_capacity",
            availability_id=str(availability.id),
            requested=units,
            vacancies=availability.vacancies,
            stage="precheck",
        )
        raise _over_capacity(units, availability.vacancies)

    booking_id = uuid.uuid4()
    start_time = time.perf_counter()

    try:
        async with atomic(db, "reserve"):
            locked = await db.execute(
                select(Availability.id, Product.capacity)
                .join(Product, Product.id == Availability.product_id)
                .where(Availability.id == availability.id)
                .with_for_update(of=Availability)
            )
            row = locked.one_or_none()
            if row is None:
                raise NotFoundError("availability", availability.id)

            booked = await count_booked_units(db, availability.id)
            vacancy = derive_vacancy(row.capacity, booked)
            if units > vacancy.vacancies:
                logger.info(
                    "booking_rejected_capacity",
                    availability_id=str(availability.id),
                    requested=units,
                    vacancies=vacancy.vacancies,
                    stage="locked",
                )
                raise _over_capacity(units, vacancy.vacancies)

            db.add(
                Booking(
                    id=booking_id,
                    availability_id=availability.id,
                    status=BookingStatus.RESERVED.value,
                    units=[
                        Unit(id=uuid.uuid4(), position=position, content=None)
                        for position in range(units)
                    ],
                )
            )
            await db.flush()
    except (InvalidRequestError, NotFoundError):
        record_reservation_attempt("rejected")
        raise
    except ServiceError:
        record_reservation_attempt("error")
        raise
    except STORE_ERRORS as exc:
        record_reservation_attempt("error")
        logger.error("booking_reserve_failed", availability_id=str(availability.id), error=str(exc))
        raise store_error(exc, "reserve") from exc
    except Exception as exc:
        record_reservation_attempt("error")
        logger.exception("booking_reserve_failed", availability_id=str(availability.id))
        raise InternalError("reserve") from exc
    finally:
        reservation_latency.observe(time.perf_counter() - start_time)

    record_reservation_attempt("success")
    logger.info(
        "booking_reserved",
        booking_id=str(booking_id),
        availability_id=str(availability.id),
        units=units,
        vacancies_left=vacancy.vacancies - units,
    )
    return await get_booking(db, booking_id)


async def confirm_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    issuer: Optional[TicketIssuer] = None,
) -> Booking:
    """
    Confirm a RESERVED booking and issue a ticket for each of its units.

    CONFIRMED is terminal: confirming twice raises InvalidRequestError and
    leaves the existing tickets untouched. The status check runs under a row
    lock so two concurrent confirmations cannot both succeed.
    """
    try:
        issuer = issuer or get_ticket_issuer()
        async with atomic(db, "confirm booking"):
            result = await db.execute(
                select(Booking)
                .where(Booking.id == booking_id)
                .options(selectinload(Booking.units))
                .with_for_update(of=Booking)
                .execution_options(populate_existing=True)
            )
            booking = result.scalar_one_or_none()
            if booking is None:
                raise NotFoundError("booking", booking_id)

            if booking.is_confirmed:
                logger.info("booking_confirm_rejected", booking_id=str(booking_id), reason="already_confirmed")
                raise InvalidRequestError(
                    InvalidParam(name="bookingId", reason="booking already confirmed")
                )

            booking.status = BookingStatus.CONFIRMED.value
            for unit in booking.units:
                unit.content = await issuer.issue(booking, unit)
            await db.flush()
            unit_count = len(booking.units)
    except (InvalidRequestError, NotFoundError):
        record_confirmation("rejected")
        raise
    except ServiceError:
        record_confirmation("error")
        raise
    except STORE_ERRORS as exc:
        record_confirmation("error")
        logger.error("booking_confirm_failed", booking_id=str(booking_id), error=str(exc))
        raise store_error(exc, "confirm booking") from exc
    except Exception as exc:
        record_confirmation("error")
        logger.exception("booking_confirm_failed", booking_id=str(booking_id))
        raise InternalError("confirm booking") from exc

    record_confirmation("success")
    logger.info("booking_confirmed", booking_id=str(booking_id), units=unit_count)
    return await get_booking(db, booking_id)
