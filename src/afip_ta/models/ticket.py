"""Data models for the access-ticket lifecycle.

This module defines dataclasses for the login ticket request (TRA), its
signed CMS form, the parsed login ticket response (TA) and cache entries.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from lxml import etree


def format_timestamp(value: datetime) -> str:
    """Format an aware datetime as ISO-8601 with seconds precision."""
    return value.isoformat(timespec="seconds")


def serialize_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 keeping fractional seconds."""
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If the value is not an ISO-8601 timestamp
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _required_text(block: Dict[str, Any], key: str) -> str:
    value = block[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string, got {value!r}")
    return value


@dataclass(frozen=True)
class LoginTicketRequest:
    """Login ticket request (TRA) submitted for signing.

    Attributes:
        unique_id: Seconds since epoch at creation
        generation_time: Creation time minus the clock skew margin
        expiration_time: Creation time plus the clock skew margin
        service: Target web service identifier (e.g. "wsfe")
    """

    unique_id: int
    generation_time: datetime
    expiration_time: datetime
    service: str

    def to_xml(self) -> str:
        """Serialize to the canonical TRA document.

        The returned text is exactly what gets signed: XML declaration,
        no indentation and no whitespace between elements.
        """
        root = etree.Element("loginTicketRequest", version="1.0")
        header = etree.SubElement(root, "header")
        etree.SubElement(header, "uniqueId").text = str(self.unique_id)
        etree.SubElement(header, "generationTime").text = format_timestamp(self.generation_time)
        etree.SubElement(header, "expirationTime").text = format_timestamp(self.expiration_time)
        etree.SubElement(root, "service").text = self.service

        body = etree.tostring(root, encoding="unicode")
        return f'<?xml version="1.0" encoding="UTF-8"?>{body}'.strip()


@dataclass(frozen=True)
class SignedRequest:
    """CMS SignedData wrapping a TRA, DER encoded then base64 encoded.

    Attributes:
        cms: Base64 text of the DER-encoded CMS ContentInfo
        signing_time: Value of the signing-time signed attribute
        request: The login ticket request that was signed
    """

    cms: str
    signing_time: datetime
    request: LoginTicketRequest


@dataclass(frozen=True)
class TicketHeader:
    """Header block of a login ticket response."""

    unique_id: str
    generation_time: datetime
    expiration_time: datetime
    source: Optional[str] = None
    destination: Optional[str] = None


@dataclass(frozen=True)
class Credentials:
    """Token/sign pair used to authenticate business web-service calls."""

    token: str
    sign: str

    def as_dict(self) -> Dict[str, str]:
        return {"token": self.token, "sign": self.sign}


@dataclass(frozen=True)
class LoginTicketResponse:
    """Parsed access ticket (TA) returned by WSAA.

    Example:
        >>> response = LoginTicketResponse.from_dict(data)
        >>> response.credentials.token
        'PD94bWwg...'
    """

    header: TicketHeader
    credentials: Credentials

    @property
    def expiration_time(self) -> datetime:
        return self.header.expiration_time

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON-serializable cache file layout."""
        return {
            "header": {
                "source": self.header.source,
                "destination": self.header.destination,
                "unique_id": self.header.unique_id,
                "generation_time": serialize_timestamp(self.header.generation_time),
                "expiration_time": serialize_timestamp(self.header.expiration_time),
            },
            "credentials": self.credentials.as_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginTicketResponse":
        """Build from the cache file layout.

        Raises:
            KeyError, TypeError, ValueError: If the layout is incomplete or malformed
        """
        header = data["header"]
        credentials = data["credentials"]
        return cls(
            header=TicketHeader(
                unique_id=_required_text(header, "unique_id"),
                generation_time=parse_timestamp(header["generation_time"]),
                expiration_time=parse_timestamp(header["expiration_time"]),
                source=header.get("source"),
                destination=header.get("destination"),
            ),
            credentials=Credentials(
                token=_required_text(credentials, "token"),
                sign=_required_text(credentials, "sign"),
            ),
        )


@dataclass(frozen=True)
class CacheEntry:
    """Cached ticket for one (cuit, service) pair.

    Attributes:
        cuit: Taxpayer identifier the ticket belongs to
        service: Web service the ticket grants access to
        response: The persisted login ticket response
    """

    cuit: str
    service: str
    response: LoginTicketResponse

    @property
    def expiration_time(self) -> datetime:
        return self.response.expiration_time
