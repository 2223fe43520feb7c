"""Login ticket request (TRA) construction.

The TRA window straddles the creation time by a fixed margin on each side
so that clock drift between this host and WSAA does not invalidate it.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from afip_ta.models.ticket import LoginTicketRequest
from afip_ta.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Clock skew tolerance applied before and after creation time. Fixed policy.
TRA_TIME_MARGIN = timedelta(minutes=10)


def build_login_ticket_request(
    service: str, now: Optional[datetime] = None
) -> LoginTicketRequest:
    """Build a login ticket request for a web service.

    Args:
        service: Target web service identifier (e.g. "wsfe")
        now: Creation time. Defaults to the current UTC time; naive values
            are taken as UTC.

    Returns:
        LoginTicketRequest with generation and expiration times set to
        now -/+ TRA_TIME_MARGIN

    Raises:
        ValidationError: If service is empty or not a string

    Example:
        >>> tra = build_login_ticket_request("wsfe")
        >>> tra.generation_time < tra.expiration_time
        True
    """
    if not isinstance(service, str) or not service.strip():
        raise ValidationError(
            "Service name is required to build a login ticket request. "
            "Provide a WSAA service identifier such as 'wsfe'."
        )

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    request = LoginTicketRequest(
        unique_id=int(now.timestamp()),
        generation_time=now - TRA_TIME_MARGIN,
        expiration_time=now + TRA_TIME_MARGIN,
        service=service.strip(),
    )

    logger.debug(
        f"Built login ticket request: service={request.service}, "
        f"unique_id={request.unique_id}"
    )
    return request
