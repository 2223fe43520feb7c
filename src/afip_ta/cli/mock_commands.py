"""CLI commands for the mock WSAA server."""

import logging
from pathlib import Path
from typing import Optional

import click

from afip_ta.mock_server.app import run_server
from afip_ta.mock_server.config import load_mock_config

logger = logging.getLogger(__name__)


@click.group(name="mock")
def mock_group() -> None:
    """Mock WSAA server commands."""
    pass


@mock_group.command(name="start")
@click.option("--host", type=str, default=None, help="Bind address (default: 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Port (default: 8080)")
@click.option(
    "--ticket-lifetime-hours",
    type=float,
    default=None,
    help="Lifetime of issued tickets (default: 12)",
)
@click.option(
    "--mock-config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Mock server configuration file (default: mocks/config.json)",
)
def start(
    host: Optional[str],
    port: Optional[int],
    ticket_lifetime_hours: Optional[float],
    mock_config: Optional[Path],
) -> None:
    """Run a local WSAA LoginCms endpoint in the foreground.

    Point the client at it with AFIP_TA_WSAA_URL, for example:

        AFIP_TA_WSAA_URL=http://127.0.0.1:8080/ws/services/LoginCms afip-ta ticket get wsfe
    """
    try:
        config = load_mock_config(mock_config)
        overrides = {
            name: value
            for name, value in (
                ("host", host),
                ("port", port),
                ("ticket_lifetime_hours", ticket_lifetime_hours),
            )
            if value is not None
        }
        if overrides:
            config = config.model_validate({**config.model_dump(), **overrides})
    except (ValueError, FileNotFoundError) as e:
        click.echo(click.style("✗ ", fg="red", bold=True) + f"Invalid mock configuration: {e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(f"Mock WSAA listening on http://{config.host}:{config.port}{config.endpoint_path}")
    run_server(config)
