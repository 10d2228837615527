from slotbook.schemas.product import ProductResponse
from slotbook.schemas.availability import AvailabilityQuery, AvailabilityResponse
from slotbook.schemas.booking import BookingCreate, BookingResponse, UnitResponse

__all__ = [
    "ProductResponse",
    "AvailabilityQuery", "AvailabilityResponse",
    "BookingCreate", "BookingResponse", "UnitResponse",
]
