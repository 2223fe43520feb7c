"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    # No default CUIT - must be provided by user
    "cuit": None,
    # Homologation (testing) WSAA unless explicitly switched
    "production": False,
    "endpoints": {
        # None selects the public WSAA URL for the chosen environment
        "wsaa_url": None,
    },
    "certificates": {
        "cert_path": None,
        "key_path": None,
        "key_passphrase_env_var": "AFIP_TA_KEY_PASSPHRASE",
    },
    "transport": {
        "verify_tls": True,
        "timeout_connect": 10,
        "timeout_read": 30,
        "exchange_timeout": 60,
        "max_connections": 4,
    },
    "cache": {
        "directory": ".afip-ta/tickets",
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/afip-ta.log",
        # Token and sign are logged in clear unless the user opts in
        "redact_secrets": False,
    },
}

DEFAULT_CONFIG_PATH = "config/config.json"
