"""Ticket CLI commands: obtain, inspect and clear cached tickets."""

import asyncio
import json
import logging
from datetime import datetime, timezone

import click

from afip_ta.cache.store import TicketCache
from afip_ta.cli.common import fail, get_config, mask_secret, require_cuit
from afip_ta.models.ticket import format_timestamp
from afip_ta.ticket_service import TicketService
from afip_ta.utils.exceptions import AfipTAError

logger = logging.getLogger(__name__)


@click.group(name="ticket")
def ticket_group() -> None:
    """Access ticket (TA) commands."""
    pass


@ticket_group.command(name="get")
@click.argument("service")
@click.option("--json", "as_json", is_flag=True, help="Print credentials as JSON")
@click.option("--show-secrets", is_flag=True, help="Print full token and sign")
@click.pass_context
def get(ctx: click.Context, service: str, as_json: bool, show_secrets: bool) -> None:
    """Get a valid ticket for SERVICE, issuing a new one if needed.

    Examples:

        afip-ta ticket get wsfe

        afip-ta ticket get ws_sr_padron_a5 --json --show-secrets
    """
    config = get_config(ctx)
    try:
        ticket_service = TicketService.from_config(config)
        try:
            credentials = asyncio.run(ticket_service.get_ticket(service))
            entry = ticket_service.cache.read_sync(ticket_service.cuit, service.strip())
        finally:
            ticket_service.close()
    except AfipTAError as e:
        fail(e)

    token = credentials.token if show_secrets else mask_secret(credentials.token)
    sign = credentials.sign if show_secrets else mask_secret(credentials.sign)
    expiration = format_timestamp(entry.expiration_time) if entry else None

    if as_json:
        click.echo(
            json.dumps(
                {
                    "cuit": config.cuit,
                    "service": service.strip(),
                    "token": token,
                    "sign": sign,
                    "expiration_time": expiration,
                },
                indent=2,
            )
        )
        return

    click.echo(click.style("✓", fg="green", bold=True) + f" Ticket available for {service.strip()}")
    click.echo(f"  CUIT:       {config.cuit}")
    click.echo(f"  Expires:    {expiration or 'unknown'}")
    click.echo(f"  Token:      {token}")
    click.echo(f"  Sign:       {sign}")


@ticket_group.command(name="status")
@click.argument("service")
@click.pass_context
def status(ctx: click.Context, service: str) -> None:
    """Show the cached ticket for SERVICE without contacting WSAA."""
    config = get_config(ctx)
    try:
        cuit = require_cuit(config)
        cache = TicketCache(config.cache.directory)
        path = cache.path_for(cuit, service)
        entry = cache.read_sync(cuit, service)
    except AfipTAError as e:
        fail(e)

    click.echo(f"Cache file: {path}")
    if entry is None:
        click.echo(click.style("No cached ticket", fg="yellow"))
        return

    now = datetime.now(timezone.utc)
    remaining = entry.expiration_time - now
    header = entry.response.header
    click.echo(f"  Source:      {header.source or '-'}")
    click.echo(f"  Destination: {header.destination or '-'}")
    click.echo(f"  Generated:   {format_timestamp(header.generation_time)}")
    click.echo(f"  Expires:     {format_timestamp(header.expiration_time)}")

    if cache.is_entry_valid(entry, now):
        minutes = int(remaining.total_seconds() // 60)
        click.echo(click.style("✓", fg="green", bold=True) + f" Valid ({minutes} minutes remaining)")
    else:
        click.echo(
            click.style("✗", fg="red", bold=True)
            + f" Not valid (within {cache.safety_margin} of expiration or expired)"
        )


@ticket_group.command(name="clear")
@click.argument("service")
@click.pass_context
def clear(ctx: click.Context, service: str) -> None:
    """Delete the cached ticket for SERVICE."""
    config = get_config(ctx)
    try:
        cuit = require_cuit(config)
        removed = TicketCache(config.cache.directory).clear_sync(cuit, service)
    except AfipTAError as e:
        fail(e)

    if removed:
        click.echo(click.style("✓", fg="green", bold=True) + f" Removed cached ticket for {service}")
    else:
        click.echo(f"No cached ticket for {service}")
