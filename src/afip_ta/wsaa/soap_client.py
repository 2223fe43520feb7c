"""WSAA loginCms SOAP client.

This module submits a signed login ticket request to the WSAA
authentication endpoint and turns the reply into a LoginTicketResponse.
The blocking HTTP call runs in a worker thread and is bounded by an
overall exchange timeout.
"""

import asyncio
import logging
import time
from typing import Optional

import requests
from lxml import etree

from ..logging_audit.audit import log_transaction
from ..models.ticket import LoginTicketResponse, SignedRequest
from ..transport.http_client import ConnectionPool, ConnectionPoolConfig
from ..utils.exceptions import (
    ProtocolError,
    RemoteRejection,
    TransportError,
    ValidationError,
)
from .parsers import (
    extract_login_cms_return,
    find_soap_fault,
    parse_login_ticket_response,
    parse_xml,
)

logger = logging.getLogger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
WSAA_NS = "http://wsaa.view.sua.dvad.gov.ar/"

PRODUCTION_URL = "https://wsaa.afip.gov.ar/ws/services/LoginCms"
HOMOLOGATION_URL = "https://wsaahomo.afip.gov.ar/ws/services/LoginCms"

TRANSACTION_TYPE = "WSAA_LOGIN_CMS"

DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 30.0
DEFAULT_EXCHANGE_TIMEOUT = 60.0


def endpoint_for(production: bool) -> str:
    """Return the WSAA URL for production or homologation."""
    return PRODUCTION_URL if production else HOMOLOGATION_URL


def build_login_cms_envelope(cms: str) -> str:
    """Build the SOAP 1.1 envelope invoking loginCms(in0=cms)."""
    envelope = etree.Element(
        f"{{{SOAP_ENV_NS}}}Envelope", nsmap={"soapenv": SOAP_ENV_NS, "wsaa": WSAA_NS}
    )
    etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Header")
    body = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    login_cms = etree.SubElement(body, f"{{{WSAA_NS}}}loginCms")
    in0 = etree.SubElement(login_cms, f"{{{WSAA_NS}}}in0")
    in0.text = cms
    return etree.tostring(envelope, xml_declaration=True, encoding="UTF-8").decode("utf-8")


class WSAAClient:
    """Client for the WSAA loginCms operation.

    Attributes:
        endpoint_url: WSAA LoginCms URL
        timeout_connect: TCP connect timeout in seconds
        timeout_read: Socket read timeout in seconds
        exchange_timeout: Upper bound for the whole exchange in seconds
        pool: Shared HTTP session provider

    Example:
        >>> client = WSAAClient(HOMOLOGATION_URL)
        >>> response = await client.exchange(signed_request)
        >>> response.credentials.token
        'PD94bWwg...'
    """

    def __init__(
        self,
        endpoint_url: str,
        pool: Optional[ConnectionPool] = None,
        verify_tls: bool = True,
        timeout_connect: float = DEFAULT_CONNECT_TIMEOUT,
        timeout_read: float = DEFAULT_READ_TIMEOUT,
        exchange_timeout: float = DEFAULT_EXCHANGE_TIMEOUT,
    ) -> None:
        """Initialize WSAA client.

        Raises:
            ValidationError: If the URL is not http(s) or a timeout is not positive
        """
        if not endpoint_url.startswith(("http://", "https://")):
            raise ValidationError(
                f"Invalid endpoint URL: {endpoint_url}. "
                "Must start with http:// or https://"
            )

        for name, value in (
            ("timeout_connect", timeout_connect),
            ("timeout_read", timeout_read),
            ("exchange_timeout", exchange_timeout),
        ):
            if value <= 0:
                raise ValidationError(
                    f"Invalid {name}: {value}. Must be greater than 0 seconds."
                )

        if endpoint_url.startswith("http://"):
            logger.warning(
                "SECURITY WARNING: Using HTTP transport (not HTTPS) for WSAA. "
                "This is only acceptable against a local mock endpoint."
            )

        self.endpoint_url = endpoint_url
        self.timeout_connect = timeout_connect
        self.timeout_read = timeout_read
        self.exchange_timeout = exchange_timeout
        self.pool = pool or ConnectionPool(ConnectionPoolConfig(verify_tls=verify_tls))

        logger.info(
            f"WSAA client initialized: endpoint={self.endpoint_url}, "
            f"exchange_timeout={exchange_timeout}s"
        )

    async def exchange(self, signed_request: SignedRequest) -> LoginTicketResponse:
        """Exchange a signed request for a login ticket.

        Args:
            signed_request: CMS-signed login ticket request

        Returns:
            Parsed LoginTicketResponse

        Raises:
            TransportError: Connection failure, timeout or non-fault HTTP error
            RemoteRejection: WSAA answered with a SOAP fault
            ProtocolError: Reply could not be parsed
        """
        envelope = build_login_cms_envelope(signed_request.cms)
        start_time = time.time()

        logger.info(
            f"Submitting loginCms to {self.endpoint_url} "
            f"(service={signed_request.request.service})"
        )

        try:
            status_code, body = await asyncio.wait_for(
                asyncio.to_thread(self._post, envelope),
                timeout=self.exchange_timeout,
            )
        except asyncio.TimeoutError as e:
            log_transaction(TRANSACTION_TYPE, envelope, "", status="failure")
            logger.error(
                f"WSAA exchange exceeded {self.exchange_timeout}s against {self.endpoint_url}"
            )
            raise TransportError(
                f"WSAA exchange timed out after {self.exchange_timeout}s"
            ) from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        return self._handle_reply(envelope, status_code, body, elapsed_ms)

    def _post(self, envelope: str) -> tuple[int, str]:
        """Blocking HTTP POST, executed in a worker thread."""
        session = self.pool.get_session()
        try:
            response = session.post(
                self.endpoint_url,
                data=envelope.encode("utf-8"),
                headers={
                    "Content-Type": "text/xml; charset=utf-8",
                    "SOAPAction": '""',
                },
                timeout=(self.timeout_connect, self.timeout_read),
            )
        except requests.exceptions.SSLError as e:
            logger.error(
                f"SSL certificate validation failed for {self.endpoint_url}. "
                f"Check server certificate or TLS configuration. Error: {e}"
            )
            raise TransportError(f"TLS handshake with WSAA failed: {e}") from e
        except requests.Timeout as e:
            logger.error(
                f"Request timeout (connect={self.timeout_connect}s, "
                f"read={self.timeout_read}s) against {self.endpoint_url}: {e}"
            )
            raise TransportError(f"WSAA request timed out: {e}") from e
        except requests.RequestException as e:
            logger.error(
                f"Could not connect to WSAA at {self.endpoint_url}. "
                f"Check network connectivity and endpoint URL. Error: {e}"
            )
            raise TransportError(f"Could not reach WSAA: {e}") from e

        return response.status_code, response.text

    def _handle_reply(
        self, envelope: str, status_code: int, body: str, elapsed_ms: int
    ) -> LoginTicketResponse:
        # WSAA reports faults with HTTP 500, so the envelope is inspected first
        fault = None
        root = None
        if body.strip():
            try:
                root = parse_xml(body)
            except ProtocolError:
                if status_code < 400:
                    log_transaction(TRANSACTION_TYPE, envelope, body, status="failure")
                    raise
            if root is not None:
                fault = find_soap_fault(root)

        if fault is not None:
            log_transaction(TRANSACTION_TYPE, envelope, body, status="failure")
            raise RemoteRejection(fault.fault_code, fault.fault_string)

        if status_code >= 400:
            log_transaction(TRANSACTION_TYPE, envelope, body, status="failure")
            logger.error(f"HTTP error {status_code} from WSAA without a SOAP fault")
            raise TransportError(f"WSAA returned HTTP {status_code}")

        log_transaction(TRANSACTION_TYPE, envelope, body, status="success")

        if root is None:
            root = parse_xml(body)
        response = parse_login_ticket_response(extract_login_cms_return(root))

        logger.info(
            f"loginCms completed in {elapsed_ms}ms: "
            f"unique_id={response.header.unique_id}, "
            f"expiration_time={response.expiration_time.isoformat()}"
        )
        return response

    def close(self) -> None:
        self.pool.close()
