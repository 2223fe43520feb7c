"""Configuration management for the mock WSAA server."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_MOCK_CONFIG_PATH = Path("mocks/config.json")
ENV_PREFIX = "MOCK_WSAA_"


class MockWSAAConfig(BaseModel):
    """Mock WSAA configuration model.

    Configuration precedence:
    1. Environment variables (MOCK_WSAA_* prefix)
    2. JSON config file
    3. Default values
    """

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8080, description="HTTP server port")
    endpoint_path: str = Field(
        default="/ws/services/LoginCms", description="LoginCms endpoint path"
    )
    ticket_lifetime_hours: float = Field(
        default=12.0, gt=0, le=48, description="Lifetime of issued tickets in hours"
    )
    reject_repeat_login: bool = Field(
        default=True,
        description="Answer coe.alreadyAuthenticated while a previous ticket is valid",
    )
    source: str = Field(
        default="CN=wsaahomo, O=AFIP, C=AR, SERIALNUMBER=CUIT 33693450239",
        description="Issuer DN written in ticket headers",
    )
    response_delay_ms: int = Field(
        default=0, ge=0, le=5000, description="Response delay in milliseconds"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f"Invalid port {v}. Must be between 1 and 65535.")
        return v

    @field_validator("endpoint_path")
    @classmethod
    def validate_endpoint_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Invalid endpoint path '{v}'. Must start with '/'.")
        return v


def load_mock_config(config_file: Optional[Path] = None) -> MockWSAAConfig:
    """Load mock server configuration from file and environment variables.

    Args:
        config_file: Path to configuration JSON file. Defaults to mocks/config.json

    Returns:
        MockWSAAConfig instance with merged configuration

    Raises:
        FileNotFoundError: If a non-default config file was given but not found
        ValueError: If configuration is invalid
    """
    if config_file is None:
        config_file = DEFAULT_MOCK_CONFIG_PATH

    config_data = {}
    if config_file.exists():
        try:
            with open(config_file, encoding="utf-8") as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to parse configuration file '{config_file}': {e}. "
                f"Ensure the file contains valid JSON."
            ) from e
    elif config_file != DEFAULT_MOCK_CONFIG_PATH:
        raise FileNotFoundError(
            f"Configuration file not found: '{config_file}'. "
            f"Ensure the file exists or check the path."
        )

    for key in MockWSAAConfig.model_fields:
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key in os.environ:
            config_data[key] = os.environ[env_key]

    try:
        return MockWSAAConfig(**config_data)
    except ValidationError as e:
        raise ValueError(f"Configuration validation failed: {e}") from e
