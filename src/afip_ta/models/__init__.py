"""Models module.

This module provides data models and dataclasses for the application.
"""

from afip_ta.models.certificate import CertificateBundle, CertificateInfo, ValidationResult
from afip_ta.models.ticket import (
    CacheEntry,
    Credentials,
    LoginTicketRequest,
    LoginTicketResponse,
    SignedRequest,
    TicketHeader,
)

__all__ = [
    "CacheEntry",
    "CertificateBundle",
    "CertificateInfo",
    "Credentials",
    "LoginTicketRequest",
    "LoginTicketResponse",
    "SignedRequest",
    "TicketHeader",
    "ValidationResult",
]
