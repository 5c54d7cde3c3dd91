"""Tests for structured logging."""

import logging

import pytest
import structlog

from dripper.observability.logging import (
    _add_request_id,
    _redact_sensitive,
    clear_request_id,
    configure_logging,
    get_logger,
    request_id_var,
    set_request_id,
)


class TestRequestIdContext:
    """Tests for request ID context variable."""

    def test_request_id_default_none(self):
        """Request ID is None by default."""
        clear_request_id()
        assert request_id_var.get() is None

    def test_set_request_id(self):
        """set_request_id sets the context variable."""
        assert set_request_id("req-123") == "req-123"
        assert request_id_var.get() == "req-123"
        clear_request_id()

    def test_set_request_id_generates(self):
        """set_request_id generates an ID when none is given."""
        request_id = set_request_id()
        try:
            assert request_id
            assert request_id_var.get() == request_id
        finally:
            clear_request_id()

    def test_clear_request_id(self):
        """clear_request_id clears the context variable."""
        set_request_id("req-456")
        clear_request_id()
        assert request_id_var.get() is None


class TestAddRequestIdProcessor:
    """Tests for _add_request_id processor."""

    def test_adds_request_id_when_set(self):
        """Adds request_id to event dict when set."""
        set_request_id("req-abc")
        try:
            event_dict = {"event": "test"}
            result = _add_request_id(None, None, event_dict)
            assert result["request_id"] == "req-abc"
        finally:
            clear_request_id()

    def test_no_request_id_when_not_set(self):
        """Does not add request_id when not set."""
        clear_request_id()
        event_dict = {"event": "test"}
        result = _add_request_id(None, None, event_dict)
        assert "request_id" not in result


class TestRedactSensitiveProcessor:
    """Tests for _redact_sensitive processor."""

    @pytest.mark.parametrize(
        "field",
        ["mnemonic", "secret", "password", "recaptcha", "bot_token", "signing_secret"],
    )
    def test_redacts_known_fields(self, field):
        """Redacts known sensitive fields."""
        event_dict = {"event": "test", field: "value"}
        result = _redact_sensitive(None, None, event_dict)
        assert result[field] == "[REDACTED]"

    def test_redacts_by_suffix(self):
        """Redacts fields ending in a sensitive suffix."""
        event_dict = {"event": "test", "faucet_mnemonic": "words", "slack_token": "xoxb"}
        result = _redact_sensitive(None, None, event_dict)
        assert result["faucet_mnemonic"] == "[REDACTED]"
        assert result["slack_token"] == "[REDACTED]"

    def test_redacts_case_insensitive(self):
        """Redacts fields case-insensitively."""
        event_dict = {"event": "test", "Mnemonic": "words"}
        result = _redact_sensitive(None, None, event_dict)
        assert result["Mnemonic"] == "[REDACTED]"

    def test_preserves_non_sensitive(self):
        """Preserves non-sensitive fields."""
        event_dict = {"event": "test", "address": "5Grw", "amount": "100", "tx_hash": "0x1"}
        result = _redact_sensitive(None, None, event_dict)
        assert result["address"] == "5Grw"
        assert result["amount"] == "100"
        assert result["tx_hash"] == "0x1"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def setup_method(self):
        """Reset structlog before each test."""
        structlog.reset_defaults()

    def test_configure_json_format(self):
        """Configures JSON format logging."""
        configure_logging(level="INFO", log_format="json")

        logger = get_logger("test")
        assert logger is not None

    def test_configure_text_format(self):
        """Configures text format logging."""
        configure_logging(level="DEBUG", log_format="text")

        logger = get_logger("test")
        assert logger is not None

    def test_configure_log_level(self):
        """Configures log level."""
        root = logging.getLogger()
        root.handlers.clear()
        configure_logging(level="WARNING", log_format="json")

        assert root.level == logging.WARNING

    def test_configure_invalid_log_level_raises(self):
        """Invalid log level raises ValueError."""
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="INVALID", log_format="json")


def test_logging_integration(capfd):
    """Integration test for structured logging."""
    structlog.reset_defaults()
    root = logging.getLogger()
    root.handlers.clear()

    configure_logging(level="INFO", log_format="json")

    set_request_id("req-integration")
    logger = get_logger("integration")
    logger.info("drip sent", address="5Grw", mnemonic="do not print")
    clear_request_id()

    captured = capfd.readouterr()
    output = captured.out + captured.err
    assert "req-integration" in output
    assert "drip sent" in output
    assert "5Grw" in output
    assert "do not print" not in output
