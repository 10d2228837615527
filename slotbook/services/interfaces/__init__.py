"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .ticketing import TicketIssuer
from .reference_ticketing import ReferenceTicketIssuer

__all__ = ['TicketIssuer', 'ReferenceTicketIssuer']
