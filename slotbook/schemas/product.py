"""
Pydantic schemas for product responses.
"""

from uuid import UUID

from slotbook.schemas.common import CamelModel


class ProductResponse(CamelModel):
    id: UUID
    name: str
    capacity: int
