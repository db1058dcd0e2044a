"""Tests for structured logging."""

import logging
import sys

from muzik.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    configure_logging,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self) -> None:
        """Test setting and getting correlation ID."""
        test_id = "test-123-abc"
        result = set_correlation_id(test_id)
        assert result == test_id
        assert get_correlation_id() == test_id

    def test_set_correlation_id_generates_id_when_none(self) -> None:
        """Test that setting None generates a short id."""
        result = set_correlation_id(None)
        assert len(result) == 12
        assert get_correlation_id() == result

    def test_scope_restores_previous_id(self) -> None:
        """Test that correlation_scope resets the id on exit."""
        set_correlation_id("outer")
        with correlation_scope() as inner:
            assert inner != "outer"
            assert get_correlation_id() == inner
        assert get_correlation_id() == "outer"

    def test_filter_adds_correlation_id_to_record(self) -> None:
        """Test that the filter stamps records."""
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        with correlation_scope("scan-1"):
            CorrelationIdFilter("test-app").filter(record)
        assert record.correlation_id == "scan-1"
        assert record.app_name == "test-app"


class TestCompactExceptionFormatter:
    """Test the compact exception chain output."""

    def test_chain_is_printed_root_cause_first(self) -> None:
        formatter = CompactExceptionFormatter(fmt="%(message)s")
        try:
            try:
                raise OSError("disk gone")
            except OSError as e:
                raise RuntimeError("save failed") from e
        except RuntimeError:
            output = formatter.formatException(sys.exc_info())

        lines = [line for line in output.splitlines() if line.startswith("╰─►")]
        assert lines == ["╰─► OSError: disk gone", "╰─► RuntimeError: save failed"]


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self) -> None:
        """Test configuring logging with DEBUG level."""
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        logger = logging.getLogger("test")
        assert logger.getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_info_level(self) -> None:
        """Test configuring logging with INFO level."""
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        logger = logging.getLogger("test")
        assert logger.getEffectiveLevel() == logging.INFO

    def test_configure_logging_replaces_handlers(self) -> None:
        """Test that repeated configuration keeps a single handler."""
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        assert len(logging.getLogger().handlers) == 1

    def test_third_party_loggers_are_quieted(self) -> None:
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
