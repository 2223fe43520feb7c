"""afip-ta: access tickets (TA) for AFIP/ARCA web services.

Issues, caches and refreshes the WSAA tickets business web services
require, one per (CUIT, service).
"""

__version__ = "0.1.0"

from afip_ta.models.ticket import Credentials, LoginTicketResponse
from afip_ta.ticket_service import TicketService
from afip_ta.utils.exceptions import (
    AfipTAError,
    ConfigurationError,
    CredentialError,
    ExpiredTicketError,
    ProtocolError,
    RemoteRejection,
    TransportError,
    ValidationError,
)

__all__ = [
    "AfipTAError",
    "ConfigurationError",
    "CredentialError",
    "Credentials",
    "ExpiredTicketError",
    "LoginTicketResponse",
    "ProtocolError",
    "RemoteRejection",
    "TicketService",
    "TransportError",
    "ValidationError",
    "__version__",
]
