"""Logging Audit module.

This module provides logging configuration and audit trail functionality.
"""

from .audit import (
    TA_CACHE_HIT,
    TA_ISSUE_FAILED,
    TA_ISSUED,
    log_audit_event,
    log_transaction,
)
from .formatters import SecretRedactingFormatter
from .logger import configure_logging, get_logger

__all__ = [
    "TA_CACHE_HIT",
    "TA_ISSUED",
    "TA_ISSUE_FAILED",
    "configure_logging",
    "get_logger",
    "log_audit_event",
    "log_transaction",
    "SecretRedactingFormatter",
]
