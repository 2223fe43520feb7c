"""Custom log formatters for afip-ta.

This module provides a formatter that masks ticket secrets (token, sign)
and the signed CMS payload before they reach a log sink.
"""

import logging
import re
from typing import List, Tuple


class SecretRedactingFormatter(logging.Formatter):
    """Formatter that redacts ticket credentials from log messages.

    Attributes:
        redact_secrets: Whether to enable redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = SecretRedactingFormatter(redact_secrets=True)
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_secrets: bool = False,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_secrets = redact_secrets

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # <token>...</token>, <sign>...</sign>, <wsaa:in0>...</wsaa:in0>
            (
                re.compile(r"<((?:\w+:)?(?:token|sign|in0))>[^<]*</\1>", re.IGNORECASE),
                r"<\1>[REDACTED]</\1>",
            ),
            # token=..., sign=... in key/value log lines
            (
                re.compile(r"\b(token|sign)=([^\s|,]+)", re.IGNORECASE),
                r"\1=[REDACTED]",
            ),
            # "token": "...", "sign": "..." in JSON dumps
            (
                re.compile(r'"(token|sign)"\s*:\s*"[^"]*"', re.IGNORECASE),
                r'"\1": "[REDACTED]"',
            ),
        ]

    def format(self, record: logging.LogRecord) -> str:
        original = super().format(record)

        if self.redact_secrets:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
