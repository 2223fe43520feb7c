"""Flask application emulating the WSAA LoginCms endpoint.

The mock verifies what the real service verifies about a login request:
the CMS structure, the message digest and signature, the TRA validity
window, and that no valid ticket was already issued for the same signer
and service. Accepted requests receive a ticket with random credentials.
"""

import base64
import binascii
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from asn1crypto import cms as a_cms
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from flask import Flask, Response, current_app, jsonify, request
from lxml import etree

from ..crypto.cms_signer import signed_attrs_to_be_signed
from ..models.ticket import parse_timestamp
from ..utils.exceptions import ProtocolError
from ..wsaa.parsers import local_name, parse_xml
from ..wsaa.soap_client import SOAP_ENV_NS, WSAA_NS
from .config import MockWSAAConfig

logger = logging.getLogger(__name__)

AXIS_FAULT_NS = "http://xml.apache.org/axis/"
WSAA_TIMEZONE = timezone(timedelta(hours=-3))
STATE_KEY = "mock_wsaa"


class LoginFault(Exception):
    """A request the mock rejects with a WSAA fault code."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class MockWSAAState:
    config: MockWSAAConfig
    clock: Callable[[], datetime]
    start_time: datetime
    request_count: int = 0
    issued: Dict[Tuple[str, str], datetime] = field(default_factory=dict)
    lock: Lock = field(default_factory=Lock)


def generate_soap_fault(
    faultcode: str,
    faultstring: str,
    http_status: int = 500,
) -> Tuple[Response, int]:
    """Generate a SOAP 1.1 fault in the layout WSAA (Axis) uses.

    Args:
        faultcode: WSAA fault code without prefix (e.g. 'coe.alreadyAuthenticated')
        faultstring: Human-readable fault description
        http_status: HTTP status code (default: 500)
    """
    envelope = etree.Element(f"{{{SOAP_ENV_NS}}}Envelope", nsmap={"soapenv": SOAP_ENV_NS})
    body = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    fault = etree.SubElement(body, f"{{{SOAP_ENV_NS}}}Fault")
    code = etree.SubElement(fault, "faultcode", nsmap={"ns1": AXIS_FAULT_NS})
    code.text = f"ns1:{faultcode}"
    etree.SubElement(fault, "faultstring").text = faultstring
    detail = etree.SubElement(fault, "detail")
    hostname = etree.SubElement(detail, f"{{{AXIS_FAULT_NS}}}hostname", nsmap={"ns2": AXIS_FAULT_NS})
    hostname.text = "mock-wsaa"

    logger.warning(f"SOAP Fault generated: {faultcode} - {faultstring}")

    xml = etree.tostring(envelope, xml_declaration=True, encoding="UTF-8")
    return Response(xml, content_type="text/xml; charset=utf-8"), http_status


def _login_cms_response(ticket_xml: str) -> Response:
    envelope = etree.Element(f"{{{SOAP_ENV_NS}}}Envelope", nsmap={"soapenv": SOAP_ENV_NS})
    body = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    response = etree.SubElement(body, f"{{{WSAA_NS}}}loginCmsResponse", nsmap={None: WSAA_NS})
    etree.SubElement(response, f"{{{WSAA_NS}}}loginCmsReturn").text = ticket_xml
    xml = etree.tostring(envelope, xml_declaration=True, encoding="UTF-8")
    return Response(xml, content_type="text/xml; charset=utf-8")


def _extract_in0(body: bytes) -> str:
    try:
        root = parse_xml(body)
    except ProtocolError as e:
        raise LoginFault("xml.bad", f"SOAP request is not valid XML: {e}") from e
    for element in root.iter():
        if local_name(element.tag) == "in0" and (element.text or "").strip():
            return element.text.strip()
    raise LoginFault("xml.bad", "loginCms request has no in0 argument")


def verify_cms(cms_b64: str) -> Tuple[bytes, str]:
    """Decode and verify a login CMS.

    Returns:
        Tuple of (encapsulated TRA bytes, signer subject DN)

    Raises:
        LoginFault: If the CMS is malformed or its digest or signature is wrong
    """
    try:
        der = base64.b64decode(cms_b64, validate=True)
        content_info = a_cms.ContentInfo.load(der)
        if content_info["content_type"].native != "signed_data":
            raise LoginFault("cms.bad", "CMS content is not SignedData")
        signed_data = content_info["content"]
        content = signed_data["encap_content_info"]["content"].native
        signer_info = signed_data["signer_infos"][0]
        signed_attrs = signer_info["signed_attrs"]
        certificate = x509.load_der_x509_certificate(
            signed_data["certificates"][0].chosen.dump()
        )
        signature = signer_info["signature"].native
        digest = None
        for attr in signed_attrs:
            if attr["type"].native == "message_digest":
                digest = attr["values"][0].native
    except LoginFault:
        raise
    except (binascii.Error, ValueError, TypeError, KeyError, IndexError) as e:
        raise LoginFault("cms.bad", f"CMS could not be decoded: {e}") from e

    if not content:
        raise LoginFault("cms.bad", "CMS does not encapsulate the login ticket request")

    if digest != hashlib.sha256(content).digest():
        raise LoginFault("cms.bad", "CMS message digest does not match its content")

    try:
        certificate.public_key().verify(
            signature,
            signed_attrs_to_be_signed(signed_attrs),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
    except (InvalidSignature, TypeError, ValueError) as e:
        raise LoginFault("cms.sign.invalid", "CMS signature is not valid") from e

    return content, certificate.subject.rfc4514_string()


def _parse_tra(content: bytes, now: datetime) -> str:
    """Validate the TRA window and return the requested service."""
    try:
        root = parse_xml(content)
    except ProtocolError as e:
        raise LoginFault("xml.bad", f"Login ticket request is not valid XML: {e}") from e

    values = {local_name(element.tag): (element.text or "").strip() for element in root.iter()}
    service = values.get("service")
    if local_name(root.tag) != "loginticketrequest" or not service:
        raise LoginFault("xml.bad", "Login ticket request is missing required elements")

    try:
        generation_time = parse_timestamp(values.get("generationtime", ""))
        expiration_time = parse_timestamp(values.get("expirationtime", ""))
    except ValueError as e:
        raise LoginFault("xml.bad", f"Login ticket request has invalid timestamps: {e}") from e

    if generation_time > now:
        raise LoginFault(
            "xml.generationTime.invalid", "generationTime is later than the current time"
        )
    if expiration_time < now:
        raise LoginFault(
            "xml.expirationTime.expired", "expirationTime is earlier than the current time"
        )
    return service


def _ticket_xml(
    config: MockWSAAConfig, destination: str, now: datetime, expiration: datetime
) -> str:
    root = etree.Element("loginTicketResponse", version="1.0")
    header = etree.SubElement(root, "header")
    etree.SubElement(header, "source").text = config.source
    etree.SubElement(header, "destination").text = destination
    etree.SubElement(header, "uniqueId").text = str(secrets.randbelow(2**31))
    etree.SubElement(header, "generationTime").text = now.astimezone(WSAA_TIMEZONE).isoformat(
        timespec="milliseconds"
    )
    etree.SubElement(header, "expirationTime").text = expiration.astimezone(
        WSAA_TIMEZONE
    ).isoformat(timespec="milliseconds")
    credentials = etree.SubElement(root, "credentials")
    etree.SubElement(credentials, "token").text = base64.b64encode(
        secrets.token_bytes(96)
    ).decode("ascii")
    etree.SubElement(credentials, "sign").text = base64.b64encode(
        secrets.token_bytes(96)
    ).decode("ascii")
    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", standalone=True).decode(
        "utf-8"
    )


def handle_login_cms() -> Tuple[Response, int]:
    state: MockWSAAState = current_app.extensions[STATE_KEY]
    config = state.config

    if config.response_delay_ms:
        time.sleep(config.response_delay_ms / 1000)

    now = state.clock()
    try:
        content, signer = verify_cms(_extract_in0(request.get_data()))
        service = _parse_tra(content, now)

        with state.lock:
            key = (signer, service)
            previous = state.issued.get(key)
            if config.reject_repeat_login and previous is not None and previous > now:
                raise LoginFault(
                    "coe.alreadyAuthenticated",
                    "El CEE ya posee un TA valido para el acceso al WSN solicitado",
                )
            expiration = now + timedelta(hours=config.ticket_lifetime_hours)
            state.issued[key] = expiration
    except LoginFault as fault:
        return generate_soap_fault(fault.code, fault.message)

    logger.info(f"Issued mock ticket: service={service}, signer={signer}")
    return _login_cms_response(_ticket_xml(config, signer, now, expiration)), 200


def health_check():
    state: MockWSAAState = current_app.extensions[STATE_KEY]
    uptime_seconds = int((datetime.now(timezone.utc) - state.start_time).total_seconds())
    return jsonify(
        {
            "status": "healthy",
            "endpoints": ["/health", state.config.endpoint_path],
            "uptime_seconds": uptime_seconds,
            "request_count": state.request_count,
            "tickets_issued": len(state.issued),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    ), 200


def log_request() -> None:
    state: MockWSAAState = current_app.extensions[STATE_KEY]
    state.request_count += 1
    logger.info(
        f"Request #{state.request_count}: {request.method} {request.path} "
        f"(Content-Length: {request.content_length or 0})"
    )


def create_app(
    config: Optional[MockWSAAConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Flask:
    """Create the mock WSAA Flask application.

    Args:
        config: Mock configuration (defaults when omitted)
        clock: Source of the current time, for tests

    Example:
        >>> app = create_app(MockWSAAConfig(ticket_lifetime_hours=1))
        >>> app.test_client().get("/health").status_code
        200
    """
    config = config or MockWSAAConfig()
    app = Flask(__name__)
    app.extensions[STATE_KEY] = MockWSAAState(
        config=config,
        clock=clock or (lambda: datetime.now(timezone.utc)),
        start_time=datetime.now(timezone.utc),
    )

    app.before_request(log_request)
    app.add_url_rule(config.endpoint_path, "login_cms", handle_login_cms, methods=["POST"])
    app.add_url_rule("/health", "health", health_check, methods=["GET"])

    logger.info(f"Mock WSAA application created: endpoint={config.endpoint_path}")
    return app


def run_server(config: Optional[MockWSAAConfig] = None, debug: bool = False) -> None:
    """Run the mock WSAA server until interrupted."""
    config = config or MockWSAAConfig()
    app = create_app(config)

    logger.info(f"Starting mock WSAA on http://{config.host}:{config.port}")
    logger.info(f"LoginCms endpoint: http://{config.host}:{config.port}{config.endpoint_path}")

    app.run(host=config.host, port=config.port, debug=debug, use_reloader=False)
