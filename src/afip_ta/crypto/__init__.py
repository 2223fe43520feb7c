"""Certificate loading and CMS signing module."""

from afip_ta.crypto.certificate_manager import (
    check_expiration_warning,
    get_certificate_info,
    load_certificate_bundle,
    load_pem_certificate,
    load_pem_private_key,
    validate_certificate,
)
from afip_ta.crypto.cms_signer import CMSSigner

__all__ = [
    "CMSSigner",
    "check_expiration_warning",
    "get_certificate_info",
    "load_certificate_bundle",
    "load_pem_certificate",
    "load_pem_private_key",
    "validate_certificate",
]
