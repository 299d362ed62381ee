"""Testes de observabilidade: correlation_id, fallback log e latência."""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from helpdesk_intake.observability.correlation import correlation_scope, get_correlation_id
from helpdesk_intake.observability.logging import (
    CorrelationIdFilter,
    configure_logging,
    log_fallback,
    short_id,
)
from helpdesk_intake.observability.timing import timed


class TestCorrelationScope:
    def test_generates_and_resets(self):
        assert get_correlation_id() == ""

        with correlation_scope() as value:
            assert get_correlation_id() == value
            assert len(value) == 36

        assert get_correlation_id() == ""

    def test_explicit_id(self):
        with correlation_scope("turn-123"):
            assert get_correlation_id() == "turn-123"

    def test_filter_injects_fields(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

        with correlation_scope("turn-456"):
            CorrelationIdFilter("helpdesk-intake").filter(record)

        assert record.correlation_id == "turn-456"
        assert record.service == "helpdesk-intake"

    def test_filter_drops_user_text(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.text = "my vpn is down"
        record.turn = 3

        CorrelationIdFilter("helpdesk-intake").filter(record)

        assert not hasattr(record, "text")
        assert record.turn == 3


class TestConfigureLogging:
    def test_installs_single_json_handler(self):
        root = logging.getLogger()
        previous_handlers, previous_level = root.handlers[:], root.level
        try:
            configure_logging("DEBUG", "helpdesk-intake")

            assert len(root.handlers) == 1
            assert root.level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers = previous_handlers
            root.setLevel(previous_level)


class TestLogFallback:
    def test_logs_info_with_reason(self, caplog):
        logger = logging.getLogger("intake-test")

        with caplog.at_level(logging.INFO):
            log_fallback(logger, "intent_classifier", reason="CapabilityUnavailableError")

        record = caplog.records[0]
        assert record.levelno == logging.INFO
        assert record.fallback_used is True
        assert record.reason == "CapabilityUnavailableError"
        assert "intent_classifier" in record.message


class TestShortId:
    def test_truncates(self):
        assert short_id("0123456789abcdef") == "01234567..."

    def test_none(self):
        assert short_id(None) is None


class TestTimed:
    def test_logs_component_latency(self):
        with patch("helpdesk_intake.observability.timing.logger") as mock_logger:
            with timed("field_extractor"):
                pass

        extra = mock_logger.debug.call_args.kwargs["extra"]
        assert extra["component"] == "field_extractor"
        assert extra["elapsed_ms"] >= 0

    def test_logs_even_on_exception(self):
        with patch("helpdesk_intake.observability.timing.logger") as mock_logger:
            with pytest.raises(ValueError):
                with timed("turn"):
                    raise ValueError("boom")

        mock_logger.debug.assert_called_once()
