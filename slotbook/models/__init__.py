from slotbook.models.product import Product
from slotbook.models.availability import Availability
from slotbook.models.booking import Booking, BookingStatus, Unit

__all__ = ["Product", "Availability", "Booking", "BookingStatus", "Unit"]
