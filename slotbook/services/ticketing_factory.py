"""
Ticket issuer factory.
Configures which ticket issuer confirmations use.
"""

from typing import Optional

from slotbook.core.config import get_settings
from slotbook.services.interfaces.ticketing import TicketIssuer
from slotbook.services.interfaces.reference_ticketing import ReferenceTicketIssuer

settings = get_settings()


def get_ticket_issuer_strategy() -> TicketIssuer:
    """
    Build the configured ticket issuer.

    Selected via the TICKET_ISSUER env var. Only "reference" ships with the
    service; unknown values fail loudly instead of issuing placeholder tickets.
    """
    issuer = settings.TICKET_ISSUER

    if issuer == 'reference':
        return ReferenceTicketIssuer(prefix=settings.TICKET_PREFIX)
    raise ValueError(f"Unknown TICKET_ISSUER: {issuer!r}")


# Singleton instance
_issuer: Optional[TicketIssuer] = None


def get_ticket_issuer() -> TicketIssuer:
    """Get ticket issuer singleton."""
    global _issuer
    if _issuer is None:
        _issuer = get_ticket_issuer_strategy()
    return _issuer
