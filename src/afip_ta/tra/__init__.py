"""Login ticket request (TRA) module."""

from afip_ta.tra.builder import TRA_TIME_MARGIN, build_login_ticket_request

__all__ = [
    "TRA_TIME_MARGIN",
    "build_login_ticket_request",
]
