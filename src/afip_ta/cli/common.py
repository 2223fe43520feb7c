"""Helpers shared by CLI command modules."""

import logging
from typing import NoReturn

import click

from afip_ta.config.schema import AfipConfig
from afip_ta.utils.exceptions import ConfigurationError, create_error_info

logger = logging.getLogger(__name__)


def fail(error: Exception) -> NoReturn:
    """Print an error with its remediation and exit with status 1."""
    info = create_error_info(error)
    logger.debug(f"Command failed: {info.error_type}: {info.message}")

    click.echo(click.style("✗ ", fg="red", bold=True) + f"{info.error_type}: {info.message}", err=True)
    click.echo(f"\nCategory: {info.category.value}", err=True)
    click.echo(f"Fix: {info.remediation}", err=True)
    if info.technical_details:
        click.echo(f"Details: {info.technical_details}", err=True)
    raise click.exceptions.Exit(1)


def get_config(ctx: click.Context) -> AfipConfig:
    return ctx.obj["config"]


def require_cuit(config: AfipConfig) -> str:
    if not config.cuit:
        raise ConfigurationError(
            "No CUIT configured. Set 'cuit' in the config file or AFIP_TA_CUIT."
        )
    return config.cuit


def mask_secret(value: str, visible: int = 12) -> str:
    """Show only the start of a secret and its length."""
    if len(value) <= visible:
        return "*" * len(value)
    return f"{value[:visible]}... ({len(value)} chars)"
