"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

_CUIT_PATTERN = re.compile(r"^\d{11}$")


class EndpointsConfig(BaseModel):
    """Configuration for the WSAA endpoint.

    Attributes:
        wsaa_url: Explicit LoginCms URL. None selects production or
            homologation from AfipConfig.production.
    """

    wsaa_url: Optional[str] = Field(default=None, description="WSAA LoginCms URL override")

    @field_validator("wsaa_url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid URL: {v}. Must start with http:// or https://"
            )
        return v


class CertificatesConfig(BaseModel):
    """Configuration for certificate and key paths.

    Attributes:
        cert_path: Path to the PEM X.509 certificate issued by AFIP
        key_path: Path to the PEM private key
        key_passphrase_env_var: Environment variable holding the key passphrase
    """

    cert_path: Optional[Path] = None
    key_path: Optional[Path] = None
    key_passphrase_env_var: str = Field(
        default="AFIP_TA_KEY_PASSPHRASE",
        description="Environment variable for the private key passphrase",
    )


class TransportConfig(BaseModel):
    """Configuration for the HTTPS exchange with WSAA.

    Attributes:
        verify_tls: Whether to verify TLS certificates
        timeout_connect: Connection timeout in seconds
        timeout_read: Read timeout in seconds
        exchange_timeout: Overall bound on one loginCms exchange in seconds
        max_connections: HTTP connection pool size
    """

    verify_tls: bool = True
    timeout_connect: int = Field(default=10, ge=1, description="Connection timeout in seconds")
    timeout_read: int = Field(default=30, ge=1, description="Read timeout in seconds")
    exchange_timeout: int = Field(
        default=60, ge=1, description="Overall exchange timeout in seconds"
    )
    max_connections: int = Field(default=4, ge=1, le=100, description="Connection pool size")

    @model_validator(mode="after")
    def validate_exchange_timeout(self) -> "TransportConfig":
        if self.exchange_timeout < self.timeout_connect:
            raise ValueError(
                f"exchange_timeout ({self.exchange_timeout}s) must not be shorter than "
                f"timeout_connect ({self.timeout_connect}s)"
            )
        return self


class CacheConfig(BaseModel):
    """Configuration for the ticket cache.

    Attributes:
        directory: Directory holding TA-{cuit}-{service}.json files
    """

    directory: Path = Field(
        default=Path(".afip-ta/tickets"),
        description="Ticket cache directory",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_secrets: Whether to mask tokens, signs and CMS payloads
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )
    log_file: Path = Field(default=Path("logs/afip-ta.log"), description="Log file path")
    redact_secrets: bool = Field(default=False, description="Redact ticket secrets from logs")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper


class AfipConfig(BaseModel):
    """Main configuration model.

    Attributes:
        cuit: Taxpayer identifier the tickets are issued for (11 digits)
        production: Use the production WSAA instead of homologation
        endpoints: WSAA endpoint override
        certificates: Certificate and key locations
        transport: HTTP transport settings
        cache: Ticket cache settings
        logging: Logging settings

    Example:
        >>> config = AfipConfig(cuit="20111111111")
        >>> config.production
        False
    """

    cuit: Optional[str] = Field(default=None, description="Taxpayer identifier (CUIT)")
    production: bool = False
    endpoints: EndpointsConfig = Field(default_factory=EndpointsConfig)
    certificates: CertificatesConfig = Field(default_factory=CertificatesConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("cuit", mode="before")
    @classmethod
    def validate_cuit(cls, v: Optional[object]) -> Optional[str]:
        """Accept the CUIT as int or str, with or without dashes.

        Raises:
            ValueError: If it does not have exactly 11 digits
        """
        if v is None:
            return None
        text = str(v).strip().replace("-", "")
        if not _CUIT_PATTERN.match(text):
            raise ValueError(f"Invalid CUIT: {v}. Must contain exactly 11 digits")
        return text
