"""Certificate management module for loading X.509 certificates and keys.

This module loads the PEM certificate and private key that WSAA associates
with a taxpayer, validates certificate dates, and bundles both for the
CMS signer.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from ..models.certificate import CertificateBundle, CertificateInfo, ValidationResult
from ..utils.exceptions import CredentialError

logger = logging.getLogger(__name__)

EXPIRATION_WARNING_DAYS = 30


def get_certificate_info(cert: x509.Certificate) -> CertificateInfo:
    """Extract certificate information for display and logging.

    Args:
        cert: X.509 certificate

    Returns:
        CertificateInfo dataclass with certificate details
    """
    public_key = cert.public_key()
    key_size = public_key.key_size if hasattr(public_key, "key_size") else None

    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        serial_number=cert.serial_number,
        key_size=key_size,
    )


def check_expiration_warning(
    cert: x509.Certificate, warning_days: int = EXPIRATION_WARNING_DAYS
) -> bool:
    """Check if certificate is expiring soon and log warning.

    Args:
        cert: X.509 certificate to check
        warning_days: Number of days before expiration to warn (default: 30)

    Returns:
        True if certificate expires within warning_days, False otherwise
    """
    now = datetime.now(timezone.utc)
    warning_date = now + timedelta(days=warning_days)

    if cert.not_valid_after_utc < warning_date:
        days_remaining = (cert.not_valid_after_utc - now).days
        logger.warning(
            f"Certificate expiring soon: {days_remaining} days remaining "
            f"(expires: {cert.not_valid_after_utc.strftime('%Y-%m-%d')})"
        )
        return True

    return False


def validate_certificate(cert: x509.Certificate) -> ValidationResult:
    """Validate certificate dates before using it to sign.

    Args:
        cert: X.509 certificate to validate

    Returns:
        ValidationResult with is_valid flag and any errors/warnings

    Example:
        >>> cert = load_pem_certificate(Path("certs/cert.pem"))
        >>> result = validate_certificate(cert)
        >>> if not result.is_valid:
        ...     print(f"Validation failed: {result.errors}")
    """
    errors: List[str] = []
    warnings: List[str] = []
    now = datetime.now(timezone.utc)

    if cert.not_valid_before_utc > now:
        errors.append(
            f"Certificate not yet valid until "
            f"{cert.not_valid_before_utc.strftime('%Y-%m-%d %H:%M:%S UTC')}"
        )

    if cert.not_valid_after_utc < now:
        days_expired = (now - cert.not_valid_after_utc).days
        errors.append(
            f"Certificate expired {days_expired} days ago on "
            f"{cert.not_valid_after_utc.strftime('%Y-%m-%d %H:%M:%S UTC')}. "
            f"Request a new certificate for this CUIT."
        )

    warning_date = now + timedelta(days=EXPIRATION_WARNING_DAYS)
    if now <= cert.not_valid_after_utc < warning_date:
        days_remaining = (cert.not_valid_after_utc - now).days
        warnings.append(
            f"Certificate expires in {days_remaining} days "
            f"({cert.not_valid_after_utc.strftime('%Y-%m-%d')})."
        )

    return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)


def load_pem_certificate(cert_path: Path) -> x509.Certificate:
    """Load X.509 certificate from PEM file.

    Args:
        cert_path: Path to PEM certificate file

    Returns:
        Loaded X.509 certificate

    Raises:
        CredentialError: If certificate cannot be loaded
    """
    if not cert_path.exists():
        raise CredentialError(
            f"Certificate file not found: {cert_path}. "
            f"Ensure the file exists and path is correct."
        )

    try:
        with open(cert_path, "rb") as f:
            cert_data = f.read()
        cert = x509.load_pem_x509_certificate(cert_data)
    except (OSError, ValueError) as e:
        raise CredentialError(
            f"Failed to load PEM certificate from {cert_path}: {e}. "
            f"Ensure file is valid PEM format."
        ) from e

    # Never log full certificate
    logger.info(f"Loaded PEM certificate: {cert.subject.rfc4514_string()}")
    check_expiration_warning(cert)
    return cert


def load_pem_private_key(
    key_path: Path, passphrase: Optional[bytes] = None
) -> rsa.RSAPrivateKey:
    """Load private key from PEM file.

    Args:
        key_path: Path to PEM private key file
        passphrase: Optional passphrase for encrypted private key

    Returns:
        Loaded RSA private key

    Raises:
        CredentialError: If the key cannot be loaded, the passphrase is wrong,
            or the key is not RSA
    """
    if not key_path.exists():
        raise CredentialError(
            f"Private key file not found: {key_path}. "
            f"Ensure the file exists and path is correct."
        )

    try:
        with open(key_path, "rb") as f:
            key_data = f.read()
        private_key = serialization.load_pem_private_key(key_data, password=passphrase)
    except TypeError as e:
        # Raised for a missing passphrase on an encrypted key or a passphrase on a plain one
        raise CredentialError(
            f"Failed to load private key from {key_path}: passphrase mismatch. "
            f"If key is encrypted, provide the correct passphrase."
        ) from e
    except (OSError, ValueError) as e:
        raise CredentialError(
            f"Failed to load PEM private key from {key_path}: {e}. "
            f"Ensure file is valid PEM format and passphrase is correct if encrypted."
        ) from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CredentialError(
            f"Unsupported private key type in {key_path}: "
            f"{type(private_key).__name__}. WSAA requires an RSA key."
        )

    # CRITICAL: Never log private key contents
    logger.info(f"Loaded PEM private key from: {key_path.name}")
    return private_key


def load_certificate_bundle(
    cert_path: Union[Path, str],
    key_path: Union[Path, str],
    passphrase: Optional[Union[bytes, str]] = None,
) -> CertificateBundle:
    """Load certificate and private key into a bundle ready for signing.

    Args:
        cert_path: Path to PEM certificate
        key_path: Path to PEM private key
        passphrase: Optional passphrase for the private key

    Returns:
        CertificateBundle containing certificate, key and info

    Raises:
        CredentialError: If either file is unusable or they do not match

    Example:
        >>> bundle = load_certificate_bundle("certs/cert.pem", "certs/key.pem")
        >>> print(bundle.info.subject)
    """
    if isinstance(passphrase, str):
        passphrase = passphrase.encode("utf-8")

    certificate = load_pem_certificate(Path(cert_path))
    private_key = load_pem_private_key(Path(key_path), passphrase)

    spki = (serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
    if certificate.public_key().public_bytes(*spki) != private_key.public_key().public_bytes(*spki):
        raise CredentialError(
            f"Private key {Path(key_path).name} does not match certificate "
            f"{certificate.subject.rfc4514_string()}."
        )

    return CertificateBundle(
        certificate=certificate,
        private_key=private_key,
        info=get_certificate_info(certificate),
    )
