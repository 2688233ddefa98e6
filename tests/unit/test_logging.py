"""Tests for structured logging and correlation IDs."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

from checkly_operator.logging import log_resource_event, sanitize_secrets, setup_structured_logging
from checkly_operator.utils.context import get_context_dict, get_correlation_id, with_correlation_id


def _log(logger, **kwargs):
    log_resource_event(
        logger,
        controller="checkly-operator",
        resource_kind="AlertChannel",
        resource_name="my-channel",
        namespace="default",
        uid="uid-1",
        event="info",
        reason="Created",
        message="New Checkly alert channel created",
        **kwargs,
    )


class TestLogResourceEvent:
    """Test cases for log_resource_event."""

    def test_json_fields(self, caplog):
        """Test that the record is a JSON object with resource context."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.INFO, logger="test.structured"):
            _log(logger, remote_id=42)

        data = json.loads(caplog.records[0].getMessage())
        assert data["resource"] == "AlertChannel"
        assert data["name"] == "my-channel"
        assert data["reason"] == "Created"
        assert data["remote_id"] == 42
        assert "correlation_id" not in data

    def test_correlation_id_included(self, caplog):
        """Test that the active correlation ID is attached."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.INFO, logger="test.structured"):
            with with_correlation_id("abc123"):
                _log(logger)

        assert json.loads(caplog.records[0].getMessage())["correlation_id"] == "abc123"

    def test_secret_fields_redacted(self, caplog):
        """Test that secret values never reach the log."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.INFO, logger="test.structured"):
            _log(logger, apiKey="og-key")

        assert "og-key" not in caplog.text

    def test_level(self, caplog):
        """Test that the requested level is used."""
        logger = logging.getLogger("test.structured")

        with caplog.at_level(logging.WARNING, logger="test.structured"):
            _log(logger, level=logging.WARNING)

        assert caplog.records[0].levelno == logging.WARNING


class TestSetupStructuredLogging:
    """Test cases for setup_structured_logging."""

    @patch("checkly_operator.logging.logging.basicConfig")
    def test_sets_level(self, mock_basic_config):
        """Test configuring the root level."""
        setup_structured_logging("debug")

        kwargs = mock_basic_config.call_args.kwargs
        assert kwargs["level"] == logging.DEBUG
        assert kwargs["format"] == "%(message)s"
        assert kwargs["force"] is True

    @patch("checkly_operator.logging.logging.basicConfig")
    def test_unknown_level_falls_back_to_info(self, mock_basic_config):
        """Test that an unknown level name means INFO."""
        setup_structured_logging("chatty")

        assert mock_basic_config.call_args.kwargs["level"] == logging.INFO


def test_sanitize_secrets():
    """Test redacting known secret keys."""
    result = sanitize_secrets({"webhookSecret": "s", "url": "https://example.com"})

    assert result == {"webhookSecret": "***REDACTED***", "url": "https://example.com"}


class TestCorrelationId:
    """Test cases for correlation ID helpers."""

    def test_generated_and_reset(self):
        """Test that an ID is generated for the block and cleared afterwards."""
        with with_correlation_id() as corr_id:
            assert corr_id
            assert get_correlation_id() == corr_id

        assert get_correlation_id() is None

    def test_nested(self):
        """Test that nested blocks restore the outer ID."""
        with with_correlation_id("outer"):
            with with_correlation_id("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"

    def test_context_dict(self):
        """Test merging extra values into the context."""
        with with_correlation_id("abc"):
            assert get_context_dict({"remote_id": 1}) == {"correlation_id": "abc", "remote_id": 1}

        assert get_context_dict() == {}
