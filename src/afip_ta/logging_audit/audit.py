"""Audit trail functionality for afip-ta.

Every ticket lookup leaves one structured AUDIT line: a cache hit, a
successful issuance or a failed issuance.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)

TA_CACHE_HIT = "TA_CACHE_HIT"
TA_ISSUED = "TA_ISSUED"
TA_ISSUE_FAILED = "TA_ISSUE_FAILED"


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Args:
        event_type: Type of operation (e.g., "TA_CACHE_HIT", "TA_ISSUED",
                   "TA_ISSUE_FAILED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - cuit: Taxpayer identifier
                - service: Target web service
                - expiration_time: Ticket expiration (ISO-8601)
                - duration: Operation duration in seconds
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for tracking related events

    Example:
        >>> log_audit_event("TA_ISSUED", {
        ...     "status": "success",
        ...     "cuit": "20111111111",
        ...     "service": "wsfe",
        ...     "duration": 0.84,
        ... })
    """
    details = dict(details)
    details.setdefault("timestamp", time.time())
    details.setdefault("correlation_id", str(uuid.uuid4()))

    message_parts = [f"AUDIT [{event_type}]"]

    field_order = [
        "status",
        "cuit",
        "service",
        "expiration_time",
        "duration",
        "error_type",
        "error_message",
        "correlation_id",
    ]

    for field in field_order:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.2f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in field_order and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    if details.get("status") == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)


def log_transaction(
    transaction_type: str,
    request: str,
    response: str,
    status: str = "success",
) -> None:
    """Log a complete WSAA exchange with request and response.

    The header line is logged at INFO, the full payloads at DEBUG.

    Args:
        transaction_type: Type of transaction (e.g., "WSAA_LOGIN_CMS")
        request: Full request SOAP envelope
        response: Full response body (empty string when none was received)
        status: Transaction status ("success" or "failure")
    """
    correlation_id = str(uuid.uuid4())

    logger.info(
        f"TRANSACTION [{transaction_type}] | "
        f"status={status} | "
        f"correlation_id={correlation_id} | "
        f"request_size={len(request)} bytes | "
        f"response_size={len(response)} bytes"
    )

    logger.debug(
        f"TRANSACTION REQUEST [{transaction_type}] | "
        f"correlation_id={correlation_id}\n"
        f"{request}"
    )

    logger.debug(
        f"TRANSACTION RESPONSE [{transaction_type}] | "
        f"correlation_id={correlation_id}\n"
        f"{response}"
    )
