"""Unit tests for logging configuration, redaction and audit lines."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from afip_ta.logging_audit import configure_logging, get_logger
from afip_ta.logging_audit.audit import (
    TA_CACHE_HIT,
    TA_ISSUE_FAILED,
    log_audit_event,
    log_transaction,
)
from afip_ta.logging_audit.formatters import SecretRedactingFormatter


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("afip_ta.test", logging.INFO, __file__, 1, message, None, None)


class TestSecretRedactingFormatter:
    """Test masking of ticket credentials."""

    def test_xml_elements_redacted(self):
        formatter = SecretRedactingFormatter(fmt="%(message)s", redact_secrets=True)

        output = formatter.format(
            _record("<token>PD94bWwg</token><sign>c2lnbg==</sign><wsaa:in0>MIIH</wsaa:in0>")
        )

        assert output == (
            "<token>[REDACTED]</token><sign>[REDACTED]</sign><wsaa:in0>[REDACTED]</wsaa:in0>"
        )

    def test_key_value_redacted(self):
        formatter = SecretRedactingFormatter(fmt="%(message)s", redact_secrets=True)

        output = formatter.format(_record("token=abc123 | sign=def456 | service=wsfe"))

        assert output == "token=[REDACTED] | sign=[REDACTED] | service=wsfe"

    def test_json_redacted(self):
        formatter = SecretRedactingFormatter(fmt="%(message)s", redact_secrets=True)

        output = formatter.format(_record('{"token": "abc", "sign": "def", "cuit": "1"}'))

        assert output == '{"token": "[REDACTED]", "sign": "[REDACTED]", "cuit": "1"}'

    def test_disabled_by_default(self):
        formatter = SecretRedactingFormatter(fmt="%(message)s")

        assert formatter.format(_record("<token>abc</token>")) == "<token>abc</token>"


class TestConfigureLogging:
    def test_handlers_installed(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "afip-ta.log"

        configure_logging(level="WARNING", log_file=log_file, redact_secrets=True)

        root = logging.getLogger()
        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG
        assert file_handlers[0].formatter.redact_secrets is True
        assert log_file.parent.exists()

    def test_file_receives_debug(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "afip-ta.log"
        configure_logging(level="ERROR", log_file=log_file)

        get_logger("afip_ta.test").debug("debug line for file")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "debug line for file" in log_file.read_text(encoding="utf-8")

    def test_invalid_level(self, tmp_path):
        with pytest.raises(ValueError) as exc_info:
            configure_logging(level="LOUD", log_file=tmp_path / "x.log")

        assert "Invalid log level" in str(exc_info.value)


class TestAuditEvents:
    """Test structured audit lines."""

    def test_success_event(self, caplog):
        caplog.set_level(logging.INFO)

        log_audit_event(
            TA_CACHE_HIT,
            {"status": "success", "cuit": "20111111111", "service": "wsfe", "duration": 0.1234},
        )

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.getMessage().startswith(
            "AUDIT [TA_CACHE_HIT] | status=success | cuit=20111111111 | service=wsfe | duration=0.12s"
        )
        assert "correlation_id=" in record.getMessage()

    def test_failure_event_logged_as_error(self, caplog):
        log_audit_event(
            TA_ISSUE_FAILED,
            {"status": "failure", "service": "wsfe", "error_type": "TransportError", "attempt": 1},
        )

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "error_type=TransportError" in record.getMessage()
        assert "attempt=1" in record.getMessage()

    def test_details_not_mutated(self):
        details = {"status": "success"}

        log_audit_event(TA_CACHE_HIT, details)

        assert details == {"status": "success"}

    def test_transaction_payloads_at_debug(self, caplog):
        caplog.set_level(logging.DEBUG)

        log_transaction("WSAA_LOGIN_CMS", "<request/>", "<response/>", status="success")

        messages = [(r.levelno, r.getMessage()) for r in caplog.records]
        assert any(
            level == logging.INFO and "status=success" in message for level, message in messages
        )
        assert any(level == logging.DEBUG and "<request/>" in message for level, message in messages)
        assert any(level == logging.DEBUG and "<response/>" in message for level, message in messages)
