"""TRA CLI commands: build and sign login ticket requests offline."""

import logging
from pathlib import Path
from typing import Optional

import click

from afip_ta.cli.common import fail, get_config
from afip_ta.config.manager import get_key_passphrase
from afip_ta.crypto.certificate_manager import load_certificate_bundle, validate_certificate
from afip_ta.crypto.cms_signer import CMSSigner
from afip_ta.tra.builder import build_login_ticket_request
from afip_ta.utils.exceptions import AfipTAError, ConfigurationError

logger = logging.getLogger(__name__)


@click.group(name="tra")
def tra_group() -> None:
    """Login ticket request (TRA) commands."""
    pass


@tra_group.command(name="build")
@click.argument("service")
def build(service: str) -> None:
    """Print the TRA XML for SERVICE."""
    try:
        request = build_login_ticket_request(service)
    except AfipTAError as e:
        fail(e)
    click.echo(request.to_xml())


@tra_group.command(name="sign")
@click.argument("service")
@click.option("--cert", type=click.Path(exists=True, path_type=Path), help="PEM certificate")
@click.option("--key", type=click.Path(exists=True, path_type=Path), help="PEM private key")
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    help="Write the base64 CMS to a file instead of stdout",
)
@click.pass_context
def sign(
    ctx: click.Context,
    service: str,
    cert: Optional[Path],
    key: Optional[Path],
    output: Optional[Path],
) -> None:
    """Build and sign a TRA for SERVICE; print the base64 CMS.

    The output is exactly what loginCms receives as in0.
    """
    config = get_config(ctx)
    cert_path = cert or config.certificates.cert_path
    key_path = key or config.certificates.key_path

    try:
        if not cert_path or not key_path:
            raise ConfigurationError(
                "Certificate and key are required. Use --cert/--key or set "
                "certificates.cert_path and certificates.key_path."
            )
        bundle = load_certificate_bundle(cert_path, key_path, get_key_passphrase(config))
        result = validate_certificate(bundle.certificate)
        for warning in result.warnings:
            click.echo(click.style("⚠ ", fg="yellow") + warning, err=True)
        for error in result.errors:
            click.echo(click.style("✗ ", fg="red") + error, err=True)

        signed = CMSSigner(bundle).sign(build_login_ticket_request(service))
    except AfipTAError as e:
        fail(e)

    if output:
        output.write_text(signed.cms + "\n", encoding="utf-8")
        click.echo(click.style("✓", fg="green", bold=True) + f" Signed TRA written to {output}")
    else:
        click.echo(signed.cms)
