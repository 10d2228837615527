"""
Tests for the booking service below the HTTP layer: atomicity and rollback.

A rollback expires every ORM instance in the session, so tests keep plain
booking ids rather than touching Booking objects after a failed call.
"""

import asyncio
import uuid

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog.testing import capture_logs

from slotbook.core.errors import InternalError, InvalidRequestError, NotFoundError
from slotbook.db.session import atomic
from slotbook.models import Booking, BookingStatus, Unit
from slotbook.schemas.booking import BookingResponse
from slotbook.services import ticketing_factory
from slotbook.services.availability_service import get_availability_by_id
from slotbook.services.booking_service import confirm_booking, get_booking, reserve
from slotbook.services.interfaces.reference_ticketing import ReferenceTicketIssuer
from slotbook.services.interfaces.ticketing import TicketIssuer


class FailingIssuer(TicketIssuer):
    """Issues the first ticket, then fails with `error`."""

    def __init__(self, error: BaseException):
        self.error = error
        self.calls = 0

    async def issue(self, booking, unit) -> str:
        self.calls += 1
        if self.calls > 1:
            raise self.error
        return "partial"


async def _reserved_id(db, availability_id, units=3) -> uuid.UUID:
    view = await get_availability_by_id(db, availability_id)
    booking = await reserve(db, view, units)
    return booking.id


async def _row_counts(db) -> tuple[int, int]:
    bookings = await db.scalar(select(func.count()).select_from(Booking))
    units = await db.scalar(select(func.count()).select_from(Unit))
    return bookings, units


def _sample(name: str, result: str) -> float:
    return REGISTRY.get_sample_value(name, {"result": result}) or 0.0


async def _assert_still_reserved(db, booking_id):
    reloaded = await get_booking(db, booking_id)
    assert reloaded.status == BookingStatus.RESERVED.value
    assert all(unit.ticket is None for unit in reloaded.units)


@pytest.mark.asyncio
async def test_reserve_creates_ordered_units(db_session, availability):
    view = await get_availability_by_id(db_session, availability.id)
    booking = await reserve(db_session, view, 4)

    assert booking.status == BookingStatus.RESERVED.value
    assert booking.product_id == availability.product_id
    assert [unit.position for unit in booking.units] == [0, 1, 2, 3]
    assert all(unit.ticket is None for unit in booking.units)


@pytest.mark.asyncio
async def test_reserve_rejects_stale_vacancy(db_session, availability):
    """A view taken before other bookings cannot be used to overbook."""
    stale_view = await get_availability_by_id(db_session, availability.id)
    await reserve(db_session, stale_view, 8)

    # stale_view still reports 10 vacancies; the locked recount sees 2
    with pytest.raises(InvalidRequestError):
        await reserve(db_session, stale_view, 3)


@pytest.mark.asyncio
async def test_reserve_cancelled_after_insert_leaves_nothing(db_session, availability, monkeypatch):
    """Cancellation after the booking and units are flushed rolls all of them back."""
    view = await get_availability_by_id(db_session, availability.id)
    real_flush = AsyncSession.flush

    async def flush_then_cancel(self, objects=None):
        await real_flush(self, objects)
        raise asyncio.CancelledError()

    monkeypatch.setattr(AsyncSession, "flush", flush_then_cancel)
    with pytest.raises(asyncio.CancelledError):
        await reserve(db_session, view, 4)
    monkeypatch.undo()

    assert await _row_counts(db_session) == (0, 0)
    view = await get_availability_by_id(db_session, availability.id)
    assert (view.vacancies, view.status) == (10, "AVAILABLE")


@pytest.mark.asyncio
async def test_reserve_rollback_failure_counts_as_error(db_session, availability, monkeypatch):
    view = await get_availability_by_id(db_session, availability.id)
    errors_before = _sample("reservation_attempts_total", "error")
    rejected_before = _sample("reservation_attempts_total", "rejected")

    async def failing_flush(self, objects=None):
        raise RuntimeError("flush failed")

    async def failing_rollback(self):
        raise OperationalError("ROLLBACK", {}, Exception("connection lost"))

    monkeypatch.setattr(AsyncSession, "flush", failing_flush)
    monkeypatch.setattr(AsyncSession, "rollback", failing_rollback)

    with pytest.raises(InternalError) as exc_info:
        await reserve(db_session, view, 2)

    assert exc_info.value.operation == "reserve"
    assert _sample("reservation_attempts_total", "error") == errors_before + 1
    assert _sample("reservation_attempts_total", "rejected") == rejected_before


@pytest.mark.asyncio
async def test_atomic_rollback_failure_is_internal_and_logged(db_session, monkeypatch):
    async def failing_rollback(self):
        raise OperationalError("ROLLBACK", {}, Exception("connection lost"))

    monkeypatch.setattr(AsyncSession, "rollback", failing_rollback)

    with capture_logs() as logs:
        with pytest.raises(InternalError) as exc_info:
            async with atomic(db_session, "insert availabilities"):
                raise RuntimeError("statement failed")

    assert exc_info.value.operation == "insert availabilities"
    assert "rollback failed" in str(exc_info.value)
    assert any(
        entry["event"] == "transaction_rollback_failed" and entry["log_level"] == "critical"
        for entry in logs
    )


@pytest.mark.asyncio
async def test_confirm_issues_tickets(db_session, availability):
    booking_id = await _reserved_id(db_session, availability.id)

    confirmed = await confirm_booking(db_session, booking_id, issuer=ReferenceTicketIssuer(prefix="TST"))

    assert confirmed.status == BookingStatus.CONFIRMED.value
    prefix = f"TST-{booking_id.hex[:8].upper()}"
    assert [unit.ticket for unit in confirmed.units] == [f"{prefix}-001", f"{prefix}-002", f"{prefix}-003"]


@pytest.mark.asyncio
async def test_confirm_twice_keeps_tickets(db_session, availability):
    booking_id = await _reserved_id(db_session, availability.id)
    first = BookingResponse.model_validate(await confirm_booking(db_session, booking_id))
    rejected_before = _sample("booking_confirmations_total", "rejected")

    with pytest.raises(InvalidRequestError):
        await confirm_booking(db_session, booking_id, issuer=ReferenceTicketIssuer(prefix="OTHER"))

    after = BookingResponse.model_validate(await get_booking(db_session, booking_id))
    assert after == first
    assert _sample("booking_confirmations_total", "rejected") == rejected_before + 1


@pytest.mark.asyncio
async def test_confirm_failure_rolls_back(db_session, availability):
    """A ticket issuer failure mid-way leaves the booking RESERVED with no tickets."""
    booking_id = await _reserved_id(db_session, availability.id)

    with pytest.raises(InternalError):
        await confirm_booking(db_session, booking_id, issuer=FailingIssuer(RuntimeError("issuer down")))

    await _assert_still_reserved(db_session, booking_id)


@pytest.mark.asyncio
async def test_confirm_cancelled_rolls_back(db_session, availability):
    """Cancellation mid-confirmation propagates and applies nothing."""
    booking_id = await _reserved_id(db_session, availability.id)

    with pytest.raises(asyncio.CancelledError):
        await confirm_booking(db_session, booking_id, issuer=FailingIssuer(asyncio.CancelledError()))

    await _assert_still_reserved(db_session, booking_id)


@pytest.mark.asyncio
async def test_confirm_with_unknown_issuer_is_internal(db_session, availability, monkeypatch):
    booking_id = await _reserved_id(db_session, availability.id)
    monkeypatch.setattr(ticketing_factory.settings, "TICKET_ISSUER", "carrier-pigeon")
    monkeypatch.setattr(ticketing_factory, "_issuer", None)
    errors_before = _sample("booking_confirmations_total", "error")

    with pytest.raises(InternalError) as exc_info:
        await confirm_booking(db_session, booking_id)

    assert exc_info.value.operation == "confirm booking"
    assert _sample("booking_confirmations_total", "error") == errors_before + 1
    await _assert_still_reserved(db_session, booking_id)


@pytest.mark.asyncio
async def test_get_unknown_booking(db_session):
    with pytest.raises(NotFoundError):
        await get_booking(db_session, uuid.uuid4())


@pytest.mark.asyncio
async def test_get_booking_is_repeatable(db_session, availability):
    booking_id = await _reserved_id(db_session, availability.id, units=2)

    first = BookingResponse.model_validate(await get_booking(db_session, booking_id))
    second = BookingResponse.model_validate(await get_booking(db_session, booking_id))
    assert first == second
