"""WSAA authentication endpoint client."""

from afip_ta.wsaa.parsers import (
    SOAPFaultInfo,
    extract_login_cms_return,
    find_soap_fault,
    parse_login_ticket_response,
)
from afip_ta.wsaa.soap_client import (
    HOMOLOGATION_URL,
    PRODUCTION_URL,
    WSAAClient,
    build_login_cms_envelope,
    endpoint_for,
)

__all__ = [
    "HOMOLOGATION_URL",
    "PRODUCTION_URL",
    "SOAPFaultInfo",
    "WSAAClient",
    "build_login_cms_envelope",
    "endpoint_for",
    "extract_login_cms_return",
    "find_soap_fault",
    "parse_login_ticket_response",
]
