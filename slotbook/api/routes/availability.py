"""
Availability query endpoint. Never cached: vacancies must be live.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.availability import AvailabilityQuery, AvailabilityResponse
from slotbook.services.availability_service import get_availability, get_availability_range

router = APIRouter(prefix="/availability", tags=["Availability"])


@router.post("", response_model=list[AvailabilityResponse])
async def list_availability_endpoint(query: AvailabilityQuery, db: AsyncSession = Depends(get_db)):
    """
    Availability for a product on one date (`localDate`) or across a date
    range (`localDateStart` .. `localDateEnd`, inclusive), ordered by date.
    """
    if query.local_date is not None:
        availability = await get_availability(db, query.product_id, query.local_date)
        views = [availability] if availability else []
    else:
        views = await get_availability_range(
            db, query.product_id, query.local_date_start, query.local_date_end
        )
    return [AvailabilityResponse.from_view(view) for view in views]
