"""HTTP session factory for the WSAA exchange.

This module provides requests sessions with TLS 1.2+ enforcement and a
bounded connection pool. Sessions never retry on their own: a login
request that reached WSAA must not be resubmitted automatically.
"""

import logging
import ssl
from dataclasses import dataclass
from threading import Lock
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.ssl_ import create_urllib3_context

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 4
DEFAULT_POOL_BLOCK = True


class TLS12Adapter(HTTPAdapter):
    """Force TLS 1.2+ for HTTPS connections.

    Example:
        >>> session = requests.Session()
        >>> session.mount('https://', TLS12Adapter())
    """

    def init_poolmanager(self, *args, **kwargs):
        context = create_urllib3_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        kwargs["ssl_context"] = context
        return super().init_poolmanager(*args, **kwargs)


@dataclass
class ConnectionPoolConfig:
    """Configuration for HTTP connection pooling.

    Attributes:
        max_connections: Maximum number of connections in the pool
        pool_block: Whether to block when the pool is exhausted
        verify_tls: Whether to verify the server certificate
    """

    max_connections: int = DEFAULT_MAX_CONNECTIONS
    pool_block: bool = DEFAULT_POOL_BLOCK
    verify_tls: bool = True

    def __post_init__(self) -> None:
        if self.max_connections < 1:
            raise ValueError(
                f"max_connections must be >= 1, got {self.max_connections}"
            )


class ConnectionPool:
    """Lazily created, shared requests session.

    Thread-safe: the WSAA client calls the session from worker threads.

    Example:
        >>> with ConnectionPool(ConnectionPoolConfig(verify_tls=True)) as pool:
        ...     response = pool.get_session().post(url, data=envelope)
    """

    def __init__(self, config: Optional[ConnectionPoolConfig] = None) -> None:
        self.config = config or ConnectionPoolConfig()
        self._session: Optional[requests.Session] = None
        self._lock = Lock()

    def get_session(self) -> requests.Session:
        """Get or create the configured HTTP session."""
        with self._lock:
            if self._session is None:
                self._session = self._create_session()
            return self._session

    def _create_session(self) -> requests.Session:
        adapter_kwargs = dict(
            pool_connections=self.config.max_connections,
            pool_maxsize=self.config.max_connections,
            pool_block=self.config.pool_block,
            max_retries=0,
        )

        session = requests.Session()
        session.mount("http://", HTTPAdapter(**adapter_kwargs))
        session.mount("https://", TLS12Adapter(**adapter_kwargs))
        session.verify = self.config.verify_tls

        if not self.config.verify_tls:
            logger.warning(
                "TLS certificate verification is DISABLED. "
                "This should only be used against a local mock endpoint."
            )

        logger.debug(
            "Created HTTP session with pool_maxsize=%d, pool_block=%s",
            self.config.max_connections,
            self.config.pool_block,
        )
        return session

    def close(self) -> None:
        """Close the session and release resources."""
        with self._lock:
            if self._session is not None:
                self._session.close()
                self._session = None
                logger.debug("ConnectionPool session closed")

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
