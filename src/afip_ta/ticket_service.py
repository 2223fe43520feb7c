"""Ticket access façade.

``TicketService.get_ticket`` is the single entry point consumers use. It
serves a cached ticket while it is valid and otherwise issues a new one:
build the TRA, sign it, exchange it with WSAA, persist it, then re-read
and validate what was persisted. Issuance happens at most once per call,
and concurrent callers for the same service share one issuance.
"""

import asyncio
import logging
import re
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union

from .cache.single_flight import SingleFlight
from .cache.store import DEFAULT_SAFETY_MARGIN, TicketCache
from .config.manager import get_key_passphrase, get_wsaa_url
from .config.schema import AfipConfig
from .crypto.certificate_manager import load_certificate_bundle
from .crypto.cms_signer import CMSSigner
from .logging_audit.audit import (
    TA_CACHE_HIT,
    TA_ISSUE_FAILED,
    TA_ISSUED,
    log_audit_event,
)
from .models.ticket import CacheEntry, Credentials, format_timestamp
from .services.registry import WebService, WebServiceRegistry, default_registry
from .transport.http_client import ConnectionPool, ConnectionPoolConfig
from .tra.builder import build_login_ticket_request
from .utils.exceptions import (
    ConfigurationError,
    ExpiredTicketError,
    ValidationError,
)
from .wsaa.soap_client import WSAAClient

logger = logging.getLogger(__name__)

_CUIT_PATTERN = re.compile(r"^\d{11}$")

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TicketService:
    """Issue, cache and serve access tickets for one CUIT.

    Attributes:
        cuit: Taxpayer identifier the tickets are bound to
        cert_path: PEM certificate registered with WSAA for this CUIT
        key_path: PEM private key matching the certificate
        client: WSAA endpoint client
        cache: Ticket cache

    The certificate and key are read on the first issuance and read again
    when either file changes on disk or the loaded certificate has expired.

    Example:
        >>> service = TicketService.from_config(load_config())
        >>> credentials = await service.get_ticket("wsfe")
        >>> credentials.token
        'PD94bWwg...'
    """

    def __init__(
        self,
        cuit: Union[str, int],
        cert_path: Union[Path, str],
        key_path: Union[Path, str],
        client: WSAAClient,
        cache: TicketCache,
        passphrase: Optional[Union[str, bytes]] = None,
        clock: Optional[Clock] = None,
        registry: Optional[WebServiceRegistry] = None,
    ) -> None:
        cuit = str(cuit).strip()
        if not _CUIT_PATTERN.match(cuit):
            raise ValidationError(f"Invalid CUIT: {cuit}. Must contain exactly 11 digits")

        self.cuit = cuit
        self.cert_path = Path(cert_path)
        self.key_path = Path(key_path)
        self.client = client
        self.cache = cache
        self._passphrase = passphrase
        self._clock = clock or _utc_now
        self._registry = registry or default_registry()
        self._signer: Optional[CMSSigner] = None
        self._signer_stamp: Optional[Tuple[int, int]] = None
        self._flight = SingleFlight()
        self._web_services: Dict[str, WebService] = {}

    @classmethod
    def from_config(
        cls,
        config: AfipConfig,
        safety_margin: timedelta = DEFAULT_SAFETY_MARGIN,
        clock: Optional[Clock] = None,
    ) -> "TicketService":
        """Build a service from a loaded configuration.

        Raises:
            ConfigurationError: If CUIT, certificate or key path is missing
        """
        missing = [
            name
            for name, value in (
                ("cuit", config.cuit),
                ("certificates.cert_path", config.certificates.cert_path),
                ("certificates.key_path", config.certificates.key_path),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}. "
                f"Set them in the config file or via AFIP_TA_* environment variables."
            )

        transport = config.transport
        pool = ConnectionPool(
            ConnectionPoolConfig(
                max_connections=transport.max_connections,
                verify_tls=transport.verify_tls,
            )
        )
        client = WSAAClient(
            get_wsaa_url(config),
            pool=pool,
            timeout_connect=transport.timeout_connect,
            timeout_read=transport.timeout_read,
            exchange_timeout=transport.exchange_timeout,
        )
        cache = TicketCache(config.cache.directory, safety_margin=safety_margin)

        return cls(
            cuit=config.cuit,
            cert_path=config.certificates.cert_path,
            key_path=config.certificates.key_path,
            client=client,
            cache=cache,
            passphrase=get_key_passphrase(config),
            clock=clock,
        )

    async def get_ticket(self, service: str) -> Credentials:
        """Return valid credentials for a web service.

        Args:
            service: WSAA service identifier (e.g. "wsfe")

        Returns:
            Credentials (token, sign) valid beyond the cache safety margin

        Raises:
            ValidationError: Empty service name
            CredentialError: Certificate or key unusable
            TransportError: WSAA unreachable or exchange timed out
            RemoteRejection: WSAA rejected the request
            ProtocolError: WSAA reply unusable, including ExpiredTicketError
        """
        if not isinstance(service, str) or not service.strip():
            raise ValidationError(
                "Service name is required. Provide a WSAA service identifier such as 'wsfe'."
            )
        service = service.strip()

        entry = await self.cache.read(self.cuit, service)
        if entry is not None and self.cache.is_entry_valid(entry, self._clock()):
            log_audit_event(
                TA_CACHE_HIT,
                {
                    "status": "success",
                    "cuit": self.cuit,
                    "service": service,
                    "expiration_time": format_timestamp(entry.expiration_time),
                },
            )
            return entry.response.credentials

        if entry is None:
            logger.info(f"No cached ticket for cuit={self.cuit}, service={service}")
        else:
            logger.info(
                f"Cached ticket for cuit={self.cuit}, service={service} expires at "
                f"{format_timestamp(entry.expiration_time)}; requesting a new one"
            )

        fresh = await self._flight.do((self.cuit, service), lambda: self._refresh(service))
        return fresh.response.credentials

    async def _refresh(self, service: str) -> CacheEntry:
        """Issue, persist and verify a ticket. Runs once per in-flight key."""
        start_time = time.time()
        try:
            # A flight that finished just before this one may already have refreshed it
            entry = await self.cache.read(self.cuit, service)
            if entry is not None and self.cache.is_entry_valid(entry, self._clock()):
                return entry

            await self._issue(service)

            fresh = await self.cache.read(self.cuit, service)
            if fresh is None or not self.cache.is_entry_valid(fresh, self._clock()):
                expiration = format_timestamp(fresh.expiration_time) if fresh else "unknown"
                raise ExpiredTicketError(
                    f"Newly issued ticket for {service} is not valid beyond the "
                    f"{self.cache.safety_margin} safety margin (expires {expiration}). "
                    f"Check the local clock against WSAA."
                )
        except Exception as e:
            log_audit_event(
                TA_ISSUE_FAILED,
                {
                    "status": "failure",
                    "cuit": self.cuit,
                    "service": service,
                    "duration": time.time() - start_time,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise

        log_audit_event(
            TA_ISSUED,
            {
                "status": "success",
                "cuit": self.cuit,
                "service": service,
                "expiration_time": format_timestamp(fresh.expiration_time),
                "duration": time.time() - start_time,
            },
        )
        return fresh

    async def _issue(self, service: str) -> None:
        """Build, sign, exchange and write. Strictly sequential."""
        now = self._clock()
        request = build_login_ticket_request(service, now)
        signer = await self._get_signer()
        signed = await asyncio.to_thread(signer.sign, request, self._clock())
        response = await self.client.exchange(signed)
        await self.cache.write(self.cuit, service, response)

    async def _get_signer(self) -> CMSSigner:
        """Return the signer, reloading it when the PEM files change or the certificate expires."""
        stamp = await asyncio.to_thread(self._credential_stamp)
        if self._signer is not None:
            expired = self._signer.cert_bundle.info.not_after <= datetime.now(timezone.utc)
            if stamp == self._signer_stamp and not expired:
                return self._signer
            logger.info(
                f"Reloading signing credentials for cuit={self.cuit}: "
                f"{'certificate expired' if expired else 'certificate or key file changed'}"
            )
            self._signer = None

        bundle = await asyncio.to_thread(
            load_certificate_bundle, self.cert_path, self.key_path, self._passphrase
        )
        self._signer = CMSSigner(bundle)
        self._signer_stamp = stamp
        return self._signer

    def _credential_stamp(self) -> Optional[Tuple[int, int]]:
        try:
            return self.cert_path.stat().st_mtime_ns, self.key_path.stat().st_mtime_ns
        except OSError:
            return None

    def web_service(self, name: str) -> WebService:
        """Return the business web-service handle registered under ``name``.

        Handles are created on first use and reused afterwards.

        Raises:
            ValidationError: If the name is not registered
        """
        handle = self._web_services.get(name)
        if handle is None:
            handle = self._registry.create(name, self)
            self._web_services[name] = handle
        return handle

    def close(self) -> None:
        self.client.close()

