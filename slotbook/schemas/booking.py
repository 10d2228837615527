"""
Pydantic schemas for booking request/response validation.
"""

from typing import Optional
from uuid import UUID

from pydantic import Field

from slotbook.schemas.common import CamelModel


class BookingCreate(CamelModel):
    product_id: UUID
    availability_id: UUID
    units: int = Field(..., gt=0)


class UnitResponse(CamelModel):
    id: UUID
    ticket: Optional[str] = None


class BookingResponse(CamelModel):
    id: UUID
    status: str
    product_id: UUID
    availability_id: UUID
    units: list[UnitResponse]
