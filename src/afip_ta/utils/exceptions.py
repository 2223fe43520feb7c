"""Custom exception classes for the AFIP access-ticket client.

All exceptions inherit from AfipTAError to allow catching all custom exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AfipTAError(Exception):
    """Base exception for all access-ticket custom exceptions."""

    pass


class ValidationError(AfipTAError):
    """Raised when input to request construction is invalid.

    Examples:
        - Empty service name
        - Malformed CUIT
        - Unknown web service name
    """

    pass


class ConfigurationError(AfipTAError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class CredentialError(AfipTAError):
    """Raised when the certificate or private key cannot be used for signing.

    Never retried automatically: a bad key will never sign successfully.

    Examples:
        - Certificate file not found
        - Invalid PEM content
        - Incorrect passphrase for encrypted key
        - Unsupported key type
    """

    pass


class TransportError(AfipTAError):
    """Raised when the authentication endpoint cannot be reached.

    Examples:
        - Connection refused
        - Exchange timeout
        - Non-fault HTTP error responses
    """

    pass


class RemoteRejection(AfipTAError):
    """Raised when WSAA answers with a SOAP fault.

    The fault text is surfaced verbatim and the request is not retried.

    Attributes:
        fault_code: SOAP fault code (e.g. "ns1:coe.alreadyAuthenticated")
        fault_string: Human-readable fault message returned by WSAA
    """

    def __init__(self, fault_code: str, fault_string: str) -> None:
        super().__init__(f"{fault_code}: {fault_string}")
        self.fault_code = fault_code
        self.fault_string = fault_string


class ProtocolError(AfipTAError):
    """Raised when a WSAA reply cannot be parsed into a login ticket.

    Examples:
        - Response body is not XML
        - loginCmsReturn element missing
        - Ticket without credentials or expiration time
    """

    pass


class ExpiredTicketError(ProtocolError):
    """Raised when a freshly issued ticket is already outside its validity window."""

    pass


class CacheCorruptionError(AfipTAError):
    """Raised internally when a cached ticket file cannot be decoded.

    The ticket cache converts this into a cache miss; it never reaches callers.
    """

    pass


class ErrorCategory(Enum):
    """Error categorization for handling strategy.

    Attributes:
        TRANSIENT: May be retried by the caller at a higher layer
        PERMANENT: Caller must fix input or wait out the remote condition
        CRITICAL: Requires operator intervention (certificates, configuration)

    Example:
        >>> category = categorize_error(TransportError("timeout"))
        >>> category == ErrorCategory.TRANSIENT
        True
    """

    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    CRITICAL = "CRITICAL"


@dataclass
class ErrorInfo:
    """Structured error information for actionable error handling.

    Attributes:
        category: Error category (TRANSIENT, PERMANENT, CRITICAL)
        error_type: Exception class name (e.g., "TransportError")
        message: User-friendly error message
        remediation: Actionable guidance for resolving the error
        is_retryable: Whether the caller may retry the operation
        technical_details: Optional technical details for debugging
    """

    category: ErrorCategory
    error_type: str
    message: str
    remediation: str
    is_retryable: bool
    technical_details: Optional[str] = None


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize exception for error handling strategy.

    Args:
        exception: The exception to categorize

    Returns:
        ErrorCategory indicating handling strategy

    Example:
        >>> categorize_error(CredentialError("bad key"))
        <ErrorCategory.CRITICAL: 'CRITICAL'>
        >>> categorize_error(RemoteRejection("ns1:coe.alreadyAuthenticated", "..."))
        <ErrorCategory.PERMANENT: 'PERMANENT'>
    """
    if isinstance(exception, (CredentialError, ConfigurationError)):
        return ErrorCategory.CRITICAL

    if isinstance(exception, TransportError):
        return ErrorCategory.TRANSIENT

    # Default to PERMANENT: validation, remote faults, protocol drift
    return ErrorCategory.PERMANENT


def create_error_info(exception: Exception) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred

    Returns:
        ErrorInfo with categorization and remediation guidance
    """
    category = categorize_error(exception)

    technical_details = None
    if exception.__cause__ is not None:
        technical_details = f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"

    return ErrorInfo(
        category=category,
        error_type=type(exception).__name__,
        message=str(exception),
        remediation=_generate_remediation(exception),
        is_retryable=category == ErrorCategory.TRANSIENT,
        technical_details=technical_details,
    )


def _generate_remediation(exception: Exception) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, CredentialError):
        return (
            "Certificate or private key is unusable. Check cert_path and key_path in "
            "config.json, and the passphrase environment variable if the key is encrypted."
        )

    if isinstance(exception, ConfigurationError):
        return (
            "Configuration error. Check config.json for missing or invalid values, "
            "or the AFIP_TA_* environment variables."
        )

    if isinstance(exception, TransportError):
        return (
            "Cannot reach WSAA. Check network connectivity, the production flag, "
            "and consider increasing transport timeouts."
        )

    if isinstance(exception, RemoteRejection):
        if "alreadyauthenticated" in exception.fault_code.lower():
            return (
                "WSAA already issued a ticket for this certificate and service. "
                "Wait for it to expire or restore the cached ticket file."
            )
        return "WSAA rejected the login request. Review the fault text above."

    if isinstance(exception, ExpiredTicketError):
        return "Issued ticket is already expired. Check the system clock (NTP)."

    if isinstance(exception, ProtocolError):
        return "WSAA reply did not match the expected format. Inspect the transaction log."

    if isinstance(exception, ValidationError):
        return "Invalid input. Check the service name and CUIT."

    return "Review the error message and the log file for details."
