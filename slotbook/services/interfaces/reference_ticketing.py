"""
Reference ticket issuer - no external system.
Derives a readable, unique ticket reference from the booking and unit.
"""

from slotbook.models.booking import Booking, Unit
from slotbook.services.interfaces.ticketing import TicketIssuer


class ReferenceTicketIssuer(TicketIssuer):
    """
    Issues references like `TKT-1A2B3C4D-002`.

    Booking prefix plus 1-based unit position, so every unit of a booking
    gets a distinct, stable reference.
    """

    def __init__(self, prefix: str = "TKT"):
        self.prefix = prefix

    async def issue(self, booking: Booking, unit: Unit) -> str:
        return f"{self.prefix}-{booking.id.hex[:8].upper()}-{unit.position + 1:03d}"
