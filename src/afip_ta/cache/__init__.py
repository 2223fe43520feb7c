"""Ticket cache and request de-duplication."""

from afip_ta.cache.single_flight import SingleFlight
from afip_ta.cache.store import DEFAULT_SAFETY_MARGIN, TicketCache

__all__ = [
    "DEFAULT_SAFETY_MARGIN",
    "SingleFlight",
    "TicketCache",
]
