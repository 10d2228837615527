"""
Ticket issuing interface.
Ticket content is produced at confirmation time by a pluggable issuer.
"""

from abc import ABC, abstractmethod

from slotbook.models.booking import Booking, Unit


class TicketIssuer(ABC):
    """
    Interface for ticket content generation.

    Implementations:
    - ReferenceTicketIssuer: deterministic, human-readable ticket references
    """

    @abstractmethod
    async def issue(self, booking: Booking, unit: Unit) -> str:
        """
        Produce the ticket content for one unit of a booking being confirmed.

        Called inside the confirmation transaction; raising aborts the
        confirmation and rolls it back.

        Args:
            booking: Booking being confirmed
            unit: Unit receiving the ticket

        Returns:
            Non-empty ticket content
        """
        pass
