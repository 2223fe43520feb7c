"""Configuration management module.

This module provides configuration loading, validation, and management
functionality for afip-ta.
"""

from afip_ta.config.manager import get_key_passphrase, get_wsaa_url, load_config
from afip_ta.config.schema import (
    AfipConfig,
    CacheConfig,
    CertificatesConfig,
    EndpointsConfig,
    LoggingConfig,
    TransportConfig,
)

__all__ = [
    "AfipConfig",
    "CacheConfig",
    "CertificatesConfig",
    "EndpointsConfig",
    "LoggingConfig",
    "TransportConfig",
    "get_key_passphrase",
    "get_wsaa_url",
    "load_config",
]
