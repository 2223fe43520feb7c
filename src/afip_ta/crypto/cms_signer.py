"""CMS/PKCS#7 signing of login ticket requests.

WSAA expects the TRA wrapped in a CMS SignedData structure with the XML
encapsulated as content, the signer certificate attached and three signed
attributes (content-type, message-digest, signing-time). The structure is
assembled with asn1crypto so that the signing time can be supplied by the
caller; the RSA signature itself comes from cryptography.
"""

import base64
import hashlib
import logging
from datetime import datetime, timezone
from typing import Optional

from asn1crypto import cms as a_cms
from asn1crypto import core as a_core
from asn1crypto import x509 as a_x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..models.certificate import CertificateBundle
from ..models.ticket import LoginTicketRequest, SignedRequest
from ..utils.exceptions import CredentialError

logger = logging.getLogger(__name__)

DIGEST_ALGORITHM = "sha256"
SIGNATURE_ALGORITHM = "sha256_rsa"


def signed_attrs_to_be_signed(attrs: a_cms.CMSAttributes) -> bytes:
    """Return the DER SET OF encoding of signed attributes.

    Inside SignerInfo the attributes carry an implicit [0] tag; the
    signature is computed over the universal SET (0x31) form.
    """
    der = attrs.dump()
    return (b"\x31" + der[1:]) if der and der[0] == 0xA0 else der


class CMSSigner:
    """Sign login ticket requests as CMS SignedData.

    Attributes:
        cert_bundle: Certificate bundle containing certificate and private key

    Example:
        >>> bundle = load_certificate_bundle("certs/cert.pem", "certs/key.pem")
        >>> signer = CMSSigner(bundle)
        >>> signed = signer.sign(build_login_ticket_request("wsfe"))
        >>> signed.cms[:4]
        'MIIH'
    """

    def __init__(self, cert_bundle: CertificateBundle) -> None:
        """Initialize CMS signer with certificate bundle.

        Args:
            cert_bundle: Certificate bundle containing certificate and private key

        Raises:
            CredentialError: If the bundle has no certificate, no key, or a non-RSA key
        """
        if not cert_bundle.certificate:
            raise CredentialError(
                "Certificate bundle must contain a valid certificate. "
                "Ensure certificate was loaded correctly."
            )

        if not cert_bundle.private_key:
            raise CredentialError(
                "Certificate bundle must contain a private key for signing. "
                "Ensure private key was loaded with the certificate."
            )

        if not isinstance(cert_bundle.private_key, rsa.RSAPrivateKey):
            raise CredentialError(
                f"Unsupported private key type: {type(cert_bundle.private_key).__name__}. "
                f"WSAA requires an RSA key."
            )

        self.cert_bundle = cert_bundle
        self._certificate = a_x509.Certificate.load(
            cert_bundle.certificate.public_bytes(serialization.Encoding.DER)
        )

        logger.debug(f"CMSSigner initialized: certificate={cert_bundle.info.subject}")

    def sign(
        self,
        request: LoginTicketRequest,
        signing_time: Optional[datetime] = None,
    ) -> SignedRequest:
        """Sign a login ticket request.

        Args:
            request: TRA to sign
            signing_time: Value for the signing-time attribute. Defaults to
                now; truncated to whole seconds.

        Returns:
            SignedRequest holding the base64 DER CMS

        Raises:
            CredentialError: If the private key refuses to sign
        """
        if signing_time is None:
            signing_time = datetime.now(timezone.utc)
        elif signing_time.tzinfo is None:
            signing_time = signing_time.replace(tzinfo=timezone.utc)
        signing_time = signing_time.astimezone(timezone.utc).replace(microsecond=0)

        content = request.to_xml().encode("utf-8")
        der = self.sign_content(content, signing_time)

        logger.info(
            f"Signed login ticket request: service={request.service}, "
            f"unique_id={request.unique_id}, size={len(der)} bytes"
        )

        return SignedRequest(
            cms=base64.b64encode(der).decode("ascii"),
            signing_time=signing_time,
            request=request,
        )

    def sign_content(self, content: bytes, signing_time: datetime) -> bytes:
        """Build the DER-encoded CMS ContentInfo for arbitrary content.

        Args:
            content: Bytes to encapsulate and sign
            signing_time: Aware datetime for the signing-time attribute

        Returns:
            DER bytes of a ContentInfo wrapping SignedData
        """
        signed_attrs = a_cms.CMSAttributes(
            [
                a_cms.CMSAttribute({"type": "content_type", "values": [a_cms.ContentType("data")]}),
                a_cms.CMSAttribute({"type": "signing_time", "values": [a_cms.Time({"utc_time": a_core.UTCTime(signing_time)})]}),
                a_cms.CMSAttribute(
                    {"type": "message_digest", "values": [hashlib.sha256(content).digest()]}
                ),
            ]
        )

        try:
            signature = self.cert_bundle.private_key.sign(
                signed_attrs_to_be_signed(signed_attrs),
                padding.PKCS1v15(),
                hashes.SHA256(),
            )
        except ValueError as e:
            logger.error(f"Private key failed to sign: {e}")
            raise CredentialError(f"Private key failed to sign login ticket request: {e}") from e

        signer_info = a_cms.SignerInfo(
            {
                "version": "v1",
                "sid": a_cms.SignerIdentifier(
                    {
                        "issuer_and_serial_number": a_cms.IssuerAndSerialNumber(
                            {
                                "issuer": self._certificate.issuer,
                                "serial_number": self._certificate.serial_number,
                            }
                        )
                    }
                ),
                "digest_algorithm": a_cms.DigestAlgorithm({"algorithm": DIGEST_ALGORITHM}),
                "signed_attrs": signed_attrs,
                "signature_algorithm": a_cms.SignedDigestAlgorithm({"algorithm": SIGNATURE_ALGORITHM}),
                "signature": signature,
            }
        )

        signed_data = a_cms.SignedData(
            {
                "version": "v1",
                "digest_algorithms": [a_cms.DigestAlgorithm({"algorithm": DIGEST_ALGORITHM})],
                # v1 SignedData takes the PKCS#7 ContentInfo form
                "encap_content_info": a_cms.ContentInfo(
                    {"content_type": "data", "content": content}
                ),
                "certificates": [self._certificate],
                "signer_infos": [signer_info],
            }
        )

        content_info = a_cms.ContentInfo({"content_type": "signed_data", "content": signed_data})
        return content_info.dump()
