"""
Pydantic schemas for availability queries and responses.

A query names either a single `localDate` or a `localDateStart` /
`localDateEnd` pair, never both.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import model_validator

from slotbook.schemas.common import CamelModel


class AvailabilityQuery(CamelModel):
    product_id: UUID
    local_date: Optional[date] = None
    local_date_start: Optional[date] = None
    local_date_end: Optional[date] = None

    @model_validator(mode="after")
    def check_date_selection(self) -> "AvailabilityQuery":
        has_single = self.local_date is not None
        has_start = self.local_date_start is not None
        has_end = self.local_date_end is not None

        if has_single and (has_start or has_end):
            raise ValueError("use either localDate or localDateStart/localDateEnd, not both")
        if not has_single and not (has_start and has_end):
            raise ValueError("localDate or both localDateStart and localDateEnd are required")
        if has_start and has_end and self.local_date_start > self.local_date_end:
            raise ValueError("localDateStart must not be after localDateEnd")
        return self


class AvailabilityResponse(CamelModel):
    id: UUID
    product_id: UUID
    local_date: date
    status: str
    vacancies: int
    available: bool

    @classmethod
    def from_view(cls, view) -> "AvailabilityResponse":
        return cls(
            id=view.id,
            product_id=view.product_id,
            local_date=view.local_date,
            status=view.status,
            vacancies=view.vacancies,
            available=view.available,
        )
