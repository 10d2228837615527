"""
Booking endpoints with capacity-safe reservation.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.booking import BookingCreate, BookingResponse
from slotbook.services.availability_service import get_availability_by_id
from slotbook.services.booking_service import confirm_booking, get_booking, reserve

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(booking_data: BookingCreate, db: AsyncSession = Depends(get_db)):
    """
    Reserve units against an availability record.

    The capacity check is repeated under a row lock on the availability, so
    concurrent requests for the same date can never overbook it. Returns the
    RESERVED booking; unit tickets are null until confirmation.
    """
    availability = await get_availability_by_id(db, booking_data.availability_id)
    return await reserve(
        db,
        availability,
        booking_data.units,
        product_id=booking_data.product_id,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(booking_id: UUID, db: AsyncSession = Depends(get_db)):
    return await get_booking(db, booking_id)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking_endpoint(booking_id: UUID, db: AsyncSession = Depends(get_db)):
    """Confirm a reserved booking and issue its tickets. Confirming twice is a 400."""
    return await confirm_booking(db, booking_id)
