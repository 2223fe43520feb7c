"""
Shared pytest configuration and fixtures.

This module provides fixtures used across unit and integration tests:
throw-away RSA certificates written to tmp_path, a fixed clock, and
builders for login ticket responses.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from afip_ta.crypto.certificate_manager import load_certificate_bundle
from afip_ta.models.certificate import CertificateBundle
from afip_ta.models.ticket import Credentials, LoginTicketResponse, TicketHeader

TEST_CUIT = "20111111111"
KEY_PASSPHRASE = "s3cret-passphrase"


def build_certificate(
    private_key: rsa.RSAPrivateKey,
    common_name: str = "afip-ta test",
    not_before: Optional[datetime] = None,
    days_valid: int = 365,
) -> x509.Certificate:
    """Build a self-signed certificate for a key."""
    not_before = not_before or datetime.now(timezone.utc) - timedelta(days=1)
    name = x509.Name(
        [
            x509.NameAttribute(NameOID.COUNTRY_NAME, "AR"),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Test Taxpayer"),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
            x509.NameAttribute(NameOID.SERIAL_NUMBER, f"CUIT {TEST_CUIT}"),
        ]
    )
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + timedelta(days=days_valid))
        .sign(private_key, hashes.SHA256())
    )


def write_pem_files(
    directory: Path,
    private_key: rsa.RSAPrivateKey,
    certificate: x509.Certificate,
    passphrase: Optional[str] = None,
) -> Tuple[Path, Path]:
    encryption = (
        serialization.BestAvailableEncryption(passphrase.encode("utf-8"))
        if passphrase
        else serialization.NoEncryption()
    )
    cert_path = directory / "cert.pem"
    key_path = directory / "key.pem"
    cert_path.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption,
        )
    )
    return cert_path, key_path


@pytest.fixture
def key_passphrase() -> str:
    return KEY_PASSPHRASE


@pytest.fixture
def certificate_factory() -> Callable[..., x509.Certificate]:
    return build_certificate


@pytest.fixture
def pem_writer() -> Callable[..., Tuple[Path, Path]]:
    return write_pem_files


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """RSA key shared by the whole test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    """A second key that matches no certificate."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate(rsa_key: rsa.RSAPrivateKey) -> x509.Certificate:
    return build_certificate(rsa_key)


@pytest.fixture
def cert_files(tmp_path: Path, rsa_key, certificate) -> Tuple[Path, Path]:
    """Unencrypted PEM certificate and key in tmp_path."""
    directory = tmp_path / "certs"
    directory.mkdir()
    return write_pem_files(directory, rsa_key, certificate)


@pytest.fixture
def encrypted_cert_files(tmp_path: Path, rsa_key, certificate) -> Tuple[Path, Path]:
    """PEM certificate and a key encrypted with KEY_PASSPHRASE."""
    directory = tmp_path / "encrypted-certs"
    directory.mkdir()
    return write_pem_files(directory, rsa_key, certificate, passphrase=KEY_PASSPHRASE)


@pytest.fixture
def cert_bundle(cert_files: Tuple[Path, Path]) -> CertificateBundle:
    cert_path, key_path = cert_files
    return load_certificate_bundle(cert_path, key_path)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_response() -> Callable[..., LoginTicketResponse]:
    """Factory for LoginTicketResponse objects."""

    def _make(
        expiration_time: datetime,
        generation_time: Optional[datetime] = None,
        token: str = "T1",
        sign: str = "S1",
        unique_id: str = "1234567890",
    ) -> LoginTicketResponse:
        return LoginTicketResponse(
            header=TicketHeader(
                unique_id=unique_id,
                generation_time=generation_time or expiration_time - timedelta(hours=12),
                expiration_time=expiration_time,
                source="CN=wsaahomo, O=AFIP, C=AR, SERIALNUMBER=CUIT 33693450239",
                destination=f"SERIALNUMBER=CUIT {TEST_CUIT}, CN=afip-ta test",
            ),
            credentials=Credentials(token=token, sign=sign),
        )

    return _make


@pytest.fixture
def ticket_xml() -> str:
    """A loginTicketResponse document as WSAA returns it."""
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<loginTicketResponse version="1.0">\n'
        "    <header>\n"
        "        <source>CN=wsaahomo, O=AFIP, C=AR, SERIALNUMBER=CUIT 33693450239</source>\n"
        "        <destination>SERIALNUMBER=CUIT 20111111111, CN=afip-ta test</destination>\n"
        "        <uniqueId>3872615520</uniqueId>\n"
        "        <generationTime>2024-05-01T08:59:00.532-03:00</generationTime>\n"
        "        <expirationTime>2024-05-01T20:59:00.532-03:00</expirationTime>\n"
        "    </header>\n"
        "    <credentials>\n"
        "        <token>PD94bWwgdmVyc2lvbj0iMS4wIj8+</token>\n"
        "        <sign>c2lnbmF0dXJl</sign>\n"
        "    </credentials>\n"
        "</loginTicketResponse>\n"
    )


@pytest.fixture
def restore_root_logger():
    """Undo handlers and level installed by configure_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
