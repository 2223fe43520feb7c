"""Main CLI entry point for afip-ta.

This module provides the main Click command group for the afip-ta CLI.
"""

from pathlib import Path
from typing import Optional

import click

from afip_ta import __version__
from afip_ta.cli.common import fail
from afip_ta.cli.mock_commands import mock_group
from afip_ta.cli.ticket_commands import ticket_group
from afip_ta.cli.tra_commands import tra_group
from afip_ta.config import load_config
from afip_ta.config.manager import get_wsaa_url
from afip_ta.logging_audit import configure_logging
from afip_ta.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="afip-ta")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-secrets",
    is_flag=True,
    help="Mask tokens, signs and CMS payloads in logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_secrets: bool,
) -> None:
    """afip-ta - access tickets for AFIP/ARCA web services.

    Common usage:

        # Obtain (or reuse) a ticket for electronic invoicing
        afip-ta ticket get wsfe

        # Inspect the cached ticket
        afip-ta ticket status wsfe

        # Run a local WSAA for development
        afip-ta mock start --port 8080
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
    except ConfigurationError as e:
        fail(e)

    ctx.obj["config"] = config_obj
    ctx.obj["verbose"] = verbose

    # Precedence: CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact = redact_secrets or config_obj.logging.redact_secrets

    configure_logging(level=log_level, log_file=log_file_path, redact_secrets=redact)


cli.add_command(ticket_group)
cli.add_command(tra_group)
cli.add_command(mock_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        afip-ta config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")
    click.echo(f"\nTaxpayer:")
    click.echo(f"  CUIT:        {config_obj.cuit or 'Not configured'}")
    click.echo(f"  Environment: {'production' if config_obj.production else 'homologation'}")
    click.echo(f"  WSAA URL:    {get_wsaa_url(config_obj)}")

    click.echo(f"\nCertificates:")
    click.echo(f"  Cert path:   {config_obj.certificates.cert_path or 'Not configured'}")
    click.echo(f"  Key path:    {config_obj.certificates.key_path or 'Not configured'}")
    click.echo(f"  Passphrase:  ${config_obj.certificates.key_passphrase_env_var}")

    click.echo(f"\nTransport:")
    click.echo(f"  Verify TLS:  {config_obj.transport.verify_tls}")
    click.echo(
        f"  Timeouts:    {config_obj.transport.timeout_connect}s connect, "
        f"{config_obj.transport.timeout_read}s read, "
        f"{config_obj.transport.exchange_timeout}s exchange"
    )

    click.echo(f"\nCache:")
    click.echo(f"  Directory:   {config_obj.cache.directory}")

    click.echo(f"\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redact:      {config_obj.logging.redact_secrets}")


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"afip-ta version {__version__}")


if __name__ == "__main__":
    cli()
