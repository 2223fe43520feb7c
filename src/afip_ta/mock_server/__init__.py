"""Mock WSAA endpoint for local development and tests."""

from afip_ta.mock_server.app import create_app, generate_soap_fault, run_server
from afip_ta.mock_server.config import MockWSAAConfig, load_mock_config

__all__ = [
    "MockWSAAConfig",
    "create_app",
    "generate_soap_fault",
    "load_mock_config",
    "run_server",
]
