"""HTTP transport module."""

from afip_ta.transport.http_client import ConnectionPool, ConnectionPoolConfig, TLS12Adapter

__all__ = [
    "ConnectionPool",
    "ConnectionPoolConfig",
    "TLS12Adapter",
]
