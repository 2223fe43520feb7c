"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from afip_ta.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from afip_ta.config.schema import AfipConfig
from afip_ta.utils.exceptions import ConfigurationError
from afip_ta.wsaa.soap_client import endpoint_for

logger = logging.getLogger(__name__)

ENV_PREFIX = "AFIP_TA_"


def load_config(config_path: Optional[Path] = None) -> AfipConfig:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (AFIP_TA_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated AfipConfig instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("config/config.json"))
        >>> config.cuit
        '20111111111'
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)
    _check_sensitive_values(config_dict)

    try:
        return AfipConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            ) from e
        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a JSON object at the top level"
            )
        logger.info(f"Loaded configuration from {config_path}")
        return config_dict

    logger.info(f"Config file not found: {config_path}. Using default configuration.")
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with AFIP_TA_ prefix.

    For example: AFIP_TA_CUIT, AFIP_TA_PRODUCTION, AFIP_TA_CERT_PATH,
    AFIP_TA_CACHE_DIR, AFIP_TA_LOG_LEVEL.

    Raises:
        ConfigurationError: If a numeric override is not a number
    """
    if cuit := os.getenv(f"{ENV_PREFIX}CUIT"):
        config_dict["cuit"] = cuit
        logger.debug("Override: cuit from environment")

    if production := os.getenv(f"{ENV_PREFIX}PRODUCTION"):
        config_dict["production"] = _parse_bool(production)
        logger.debug("Override: production from environment")

    # Endpoints section
    if wsaa_url := os.getenv(f"{ENV_PREFIX}WSAA_URL"):
        config_dict.setdefault("endpoints", {})["wsaa_url"] = wsaa_url
        logger.debug("Override: wsaa_url from environment")

    # Certificates section
    if cert_path := os.getenv(f"{ENV_PREFIX}CERT_PATH"):
        config_dict.setdefault("certificates", {})["cert_path"] = cert_path
        logger.debug("Override: cert_path from environment")

    if key_path := os.getenv(f"{ENV_PREFIX}KEY_PATH"):
        config_dict.setdefault("certificates", {})["key_path"] = key_path
        logger.debug("Override: key_path from environment")

    # Transport section
    if verify_tls := os.getenv(f"{ENV_PREFIX}VERIFY_TLS"):
        config_dict.setdefault("transport", {})["verify_tls"] = _parse_bool(verify_tls)
        logger.debug("Override: verify_tls from environment")

    for field in ("timeout_connect", "timeout_read", "exchange_timeout", "max_connections"):
        if value := os.getenv(f"{ENV_PREFIX}{field.upper()}"):
            config_dict.setdefault("transport", {})[field] = _parse_int(field, value)
            logger.debug(f"Override: {field} from environment")

    # Cache section
    if cache_dir := os.getenv(f"{ENV_PREFIX}CACHE_DIR"):
        config_dict.setdefault("cache", {})["directory"] = cache_dir
        logger.debug("Override: cache directory from environment")

    # Logging section
    if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        config_dict.setdefault("logging", {})["level"] = log_level
        logger.debug("Override: log_level from environment")

    if log_file := os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config_dict.setdefault("logging", {})["log_file"] = log_file
        logger.debug("Override: log_file from environment")

    if redact_secrets := os.getenv(f"{ENV_PREFIX}REDACT_SECRETS"):
        config_dict.setdefault("logging", {})["redact_secrets"] = _parse_bool(redact_secrets)
        logger.debug("Override: redact_secrets from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {ENV_PREFIX}{name.upper()}: {value!r}. Must be an integer."
        ) from e


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when a key passphrase was written into the configuration file."""
    certs = config_dict.get("certificates") or {}
    for key in ("key_passphrase", "passphrase", "password"):
        if key in certs:
            logger.warning(
                "WARNING: Private key passphrase found in configuration file! "
                "Passphrases should be stored in environment variables, not config files. "
                f"Use the {certs.get('key_passphrase_env_var', ENV_PREFIX + 'KEY_PASSPHRASE')} "
                "environment variable instead."
            )
            certs.pop(key)
            break


def get_wsaa_url(config: AfipConfig) -> str:
    """Resolve the WSAA LoginCms URL for a configuration."""
    return config.endpoints.wsaa_url or endpoint_for(config.production)


def get_key_passphrase(config: AfipConfig) -> Optional[str]:
    """Read the private key passphrase from the configured environment variable."""
    return os.getenv(config.certificates.key_passphrase_env_var) or None
