"""Response parsers for the WSAA loginCms exchange.

WSAA replies are untrusted input: parsing never resolves entities, loads
DTDs or touches the network, and every expected element is checked for
presence. Tag names are compared case-insensitively on their local part,
so namespace URIs and envelope prefixes never matter.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from lxml import etree

from ..models.ticket import (
    Credentials,
    LoginTicketResponse,
    TicketHeader,
    parse_timestamp,
)
from ..utils.exceptions import ProtocolError

logger = logging.getLogger(__name__)


@dataclass
class SOAPFaultInfo:
    """Parsed SOAP fault information.

    Attributes:
        fault_code: SOAP fault code (e.g., "ns1:coe.alreadyAuthenticated")
        fault_string: Human-readable fault message
        fault_detail: Optional detailed fault information
    """

    fault_code: str
    fault_string: str
    fault_detail: Optional[str] = None
    subcodes: List[str] = field(default_factory=list)


def _secure_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        remove_comments=True,
        remove_pis=True,
    )


def local_name(tag: object) -> str:
    """Return the lowercased local part of a tag.

    Strips both Clark notation namespaces ("{uri}name") and literal
    prefixes ("soapenv:name"). Non-element nodes yield an empty string.
    """
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return tag.lower()


def _find(element: etree._Element, name: str) -> Optional[etree._Element]:
    """Find first descendant (or self) whose local name matches."""
    for candidate in element.iter():
        if local_name(candidate.tag) == name:
            return candidate
    return None


def _children_text(element: etree._Element) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for child in element:
        name = local_name(child.tag)
        if name and name not in values:
            values[name] = (child.text or "").strip()
    return values


def parse_xml(xml: Union[str, bytes]) -> etree._Element:
    """Parse XML text with the secure parser.

    Raises:
        ProtocolError: If the text is not well-formed XML
    """
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    try:
        return etree.fromstring(data, parser=_secure_parser())
    except etree.XMLSyntaxError as e:
        raise ProtocolError(f"WSAA response is not valid XML: {e}") from e


def find_soap_fault(root: etree._Element) -> Optional[SOAPFaultInfo]:
    """Return fault information if the envelope carries a SOAP fault.

    Handles both SOAP 1.1 (faultcode/faultstring) and SOAP 1.2
    (Code/Value, Reason/Text) layouts.
    """
    fault_elem = _find(root, "fault")
    if fault_elem is None:
        return None

    values = _children_text(fault_elem)

    if "faultcode" in values or "faultstring" in values:
        fault_code = values.get("faultcode") or "Unknown"
        fault_string = values.get("faultstring") or "No fault message provided"
    else:
        code_elem = _find(fault_elem, "value")
        reason_elem = _find(fault_elem, "text")
        fault_code = (code_elem.text or "").strip() if code_elem is not None else "Unknown"
        fault_string = (
            (reason_elem.text or "").strip() if reason_elem is not None else ""
        ) or "No fault message provided"

    subcodes: List[str] = []
    subcode_elem = _find(fault_elem, "subcode")
    if subcode_elem is not None:
        subcodes = [
            (value.text or "").strip()
            for value in subcode_elem.iter()
            if local_name(value.tag) == "value" and value.text
        ]

    fault_detail = None
    detail_elem = _find(fault_elem, "detail")
    if detail_elem is not None:
        parts = [text.strip() for text in detail_elem.itertext() if text.strip()]
        if parts:
            fault_detail = "; ".join(parts)

    logger.error(f"SOAP Fault received - Code: {fault_code}, Message: {fault_string}")
    if fault_detail:
        logger.error(f"Fault Detail: {fault_detail}")

    return SOAPFaultInfo(
        fault_code=fault_code,
        fault_string=fault_string,
        fault_detail=fault_detail,
        subcodes=subcodes,
    )


def extract_login_cms_return(root: etree._Element) -> str:
    """Extract the ticket XML string carried by loginCmsReturn.

    Raises:
        ProtocolError: If the element is missing or empty
    """
    return_elem = _find(root, "logincmsreturn")
    if return_elem is None or not (return_elem.text or "").strip():
        raise ProtocolError(
            "WSAA response does not contain a loginCmsReturn element. "
            "The endpoint contract may have changed."
        )
    return return_elem.text.strip()


def parse_login_ticket_response(ticket_xml: Union[str, bytes]) -> LoginTicketResponse:
    """Parse a loginTicketResponse document.

    Args:
        ticket_xml: Content of loginCmsReturn

    Returns:
        LoginTicketResponse with header and credentials

    Raises:
        ProtocolError: If the document is malformed, a required field is
            missing, or timestamps are invalid

    Example:
        >>> ta = parse_login_ticket_response(xml)
        >>> ta.credentials.token
        'PD94bWwg...'
    """
    root = parse_xml(ticket_xml)

    ticket_elem = root if local_name(root.tag) == "loginticketresponse" else _find(root, "loginticketresponse")
    if ticket_elem is None:
        raise ProtocolError(
            f"Expected loginTicketResponse document, got <{local_name(root.tag)}>."
        )

    header_elem = _find(ticket_elem, "header")
    credentials_elem = _find(ticket_elem, "credentials")
    if header_elem is None or credentials_elem is None:
        raise ProtocolError("loginTicketResponse is missing its header or credentials block.")

    header = _children_text(header_elem)
    credentials = _children_text(credentials_elem)

    missing = [
        name
        for name, values in (
            ("uniqueid", header),
            ("generationtime", header),
            ("expirationtime", header),
            ("token", credentials),
            ("sign", credentials),
        )
        if not values.get(name)
    ]
    if missing:
        raise ProtocolError(
            f"loginTicketResponse is missing required fields: {', '.join(missing)}"
        )

    try:
        generation_time = parse_timestamp(header["generationtime"])
        expiration_time = parse_timestamp(header["expirationtime"])
    except ValueError as e:
        raise ProtocolError(f"loginTicketResponse has an invalid timestamp: {e}") from e

    if expiration_time <= generation_time:
        raise ProtocolError(
            f"loginTicketResponse expirationTime {header['expirationtime']} is not after "
            f"generationTime {header['generationtime']}."
        )

    return LoginTicketResponse(
        header=TicketHeader(
            unique_id=header["uniqueid"],
            generation_time=generation_time,
            expiration_time=expiration_time,
            source=header.get("source") or None,
            destination=header.get("destination") or None,
        ),
        credentials=Credentials(token=credentials["token"], sign=credentials["sign"]),
    )
