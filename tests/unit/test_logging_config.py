"""Tests for the structured logging helpers."""

from unittest.mock import Mock

import structlog

from thesis_app.config.defaults import LoggingParams
from thesis_app.logging.config import (
    configure_logging,
    configure_logging_from_params,
    get_reconcile_logger,
    get_status_logger,
    log_reconcile_write,
    log_status_change,
)


class TestLogHelpers:
    """Test the standardized event helpers."""

    def setup_method(self):
        """Set up a mock logger whose bind returns itself."""
        self.mock_logger = Mock()
        self.mock_logger.bind.return_value = self.mock_logger

    def test_log_status_change(self):
        """Test the status change event fields."""
        log_status_change(
            self.mock_logger,
            symbol="AAPL",
            item_id=1,
            from_status="on-track",
            to_status="achieved",
            rule="target_reached",
            context={"current_price": 160.0}
        )

        fields = self.mock_logger.bind.call_args_list[0].kwargs
        assert fields["symbol"] == "AAPL"
        assert fields["to_status"] == "achieved"
        assert fields["event_type"] == "status_change"
        self.mock_logger.bind.assert_any_call(context={"current_price": 160.0})
        self.mock_logger.info.assert_called_once_with("Status change")

    def test_log_reconcile_write_levels(self):
        """Test that the outcome picks the log level."""
        for outcome in ("written", "failed", "skipped_in_flight"):
            log_reconcile_write(
                self.mock_logger,
                item_id=1,
                symbol="AAPL",
                from_status="on-track",
                to_status="achieved",
                outcome=outcome
            )

        self.mock_logger.info.assert_called_once_with("Reconcile write")
        self.mock_logger.error.assert_called_once_with("Reconcile write failed")
        self.mock_logger.debug.assert_called_once_with("Reconcile write skipped")


class TestConfigureLogging:
    """Test structlog configuration."""

    def teardown_method(self):
        structlog.reset_defaults()

    def test_configure_json(self):
        """Test JSON configuration ends with the JSON renderer."""
        configure_logging(level="DEBUG", format_json=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_configure_from_params(self):
        """Test configuration from the loaded logging section."""
        configure_logging_from_params(LoggingParams(level="ERROR", format_json=True))

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_subsystem_loggers(self):
        """Test that subsystem loggers can log after configuration."""
        configure_logging(level="WARNING", include_caller=True)

        get_status_logger("test.status").warning("status check")
        get_reconcile_logger("test.reconcile").warning("reconcile check")
