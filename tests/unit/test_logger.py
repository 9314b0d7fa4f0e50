"""
Unit tests for structured logging utility (sql_compare/utils/logger.py)

Comprehensive tests covering:
- JSON log formatting with required fields (timestamp, level, message, operation, context)
- Connection string password masking
- Log level configuration
- Log operation decorator
"""

import json
import logging
import time
from datetime import datetime
from io import StringIO

import pytest

from sql_compare.utils.logger import (
    StructuredLogger,
    get_logger,
    log_operation,
    mask_connection_string,
    set_log_level,
)


@pytest.fixture(autouse=True)
def restore_level():
    yield
    set_log_level("WARNING")


class TestMaskConnectionString:
    """Tests for connection string masking utility."""

    def test_mask_pwd(self):
        result = mask_connection_string("Server=db;UID=sa;PWD=secret")
        assert result == "Server=db;UID=sa;PWD=****"

    def test_mask_password_keyword(self):
        result = mask_connection_string("Data Source=db;Password=secret;Initial Catalog=x")
        assert result == "Data Source=db;Password=****;Initial Catalog=x"

    def test_mask_braced_password(self):
        result = mask_connection_string("Server=db;pwd={se;cret};UID=sa")
        assert "se;cret" not in result
        assert result == "Server=db;pwd=****;UID=sa"

    def test_no_password(self):
        assert mask_connection_string("Server=db;Trusted_Connection=yes") == (
            "Server=db;Trusted_Connection=yes"
        )

    def test_empty_value(self):
        assert mask_connection_string("") == "unknown"
        assert mask_connection_string(None) == "unknown"


class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    @pytest.fixture
    def logger_with_handler(self):
        """Fixture providing logger with string stream handler."""
        logger = StructuredLogger("test_logger")
        logger.logger.handlers.clear()

        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.logger.addHandler(handler)
        logger.logger.setLevel(logging.DEBUG)

        return logger, stream

    def test_format_log_basic_fields(self, logger_with_handler):
        """Test log formatting includes required fields."""
        logger, _ = logger_with_handler

        parsed = json.loads(logger._format_log("INFO", "Test message"))

        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        timestamp = parsed["timestamp"]
        assert timestamp.endswith("Z")
        datetime.fromisoformat(timestamp.replace("Z", "+00:00"))

    def test_format_log_all_fields(self, logger_with_handler):
        """Test log formatting with all optional fields."""
        logger, _ = logger_with_handler

        context = {"result_set": 2, "query": "compare"}
        parsed = json.loads(
            logger._format_log(
                "ERROR",
                "Something went wrong",
                operation="compare_rows",
                context=context,
                duration_ms=45.678,
                error="Value mismatch",
            )
        )

        assert parsed["operation"] == "compare_rows"
        assert parsed["context"] == context
        assert parsed["duration_ms"] == 45.68
        assert parsed["error"] == "Value mismatch"

    def test_format_log_serializes_unknown_types(self, logger_with_handler):
        """Test non-JSON values (Decimal, datetime) are stringified."""
        from decimal import Decimal

        logger, _ = logger_with_handler

        parsed = json.loads(
            logger._format_log("INFO", "value", context={"value": Decimal("1.50")})
        )

        assert parsed["context"]["value"] == "1.50"

    def test_logger_methods_write_json_lines(self, logger_with_handler):
        """Test every level writes one JSON line."""
        logger, stream = logger_with_handler

        logger.debug("Debug message", operation="test_op")
        logger.info("Info message", duration_ms=12.5)
        logger.warning("Warning message", error="Something wrong")
        logger.error("Error message", error="Query failed")

        lines = [json.loads(line) for line in stream.getvalue().strip().split("\n")]

        assert [line["level"] for line in lines] == ["DEBUG", "INFO", "WARNING", "ERROR"]
        assert lines[0]["operation"] == "test_op"
        assert lines[1]["duration_ms"] == 12.5
        assert lines[2]["error"] == "Something wrong"

    def test_default_level_is_warning(self):
        """Test a new logger only emits warnings and errors by default."""
        logger = StructuredLogger("test_default_level")

        assert logger.logger.level == logging.WARNING


class TestSetLogLevel:
    """Tests for set_log_level()."""

    def test_applies_to_existing_loggers(self):
        logger = get_logger("test_existing_level")

        set_log_level("debug")

        assert logger.logger.level == logging.DEBUG

    def test_applies_to_new_loggers(self):
        set_log_level("INFO")

        assert get_logger("test_new_level").logger.level == logging.INFO

    def test_unknown_level_falls_back_to_warning(self):
        set_log_level("chatty")

        assert get_logger("test_unknown_level").logger.level == logging.WARNING


class TestLogOperationDecorator:
    """Tests for log_operation decorator."""

    def test_log_operation_returns_result(self):
        @log_operation("test_operation")
        def test_func():
            return "result"

        assert test_func() == "result"

    def test_log_operation_reraises(self):
        @log_operation("failing_operation")
        def failing_func():
            raise ValueError("Test error")

        with pytest.raises(ValueError):
            failing_func()

    def test_log_operation_logs_duration(self):
        set_log_level("DEBUG")
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        module_logger = get_logger(__name__).logger
        module_logger.addHandler(handler)

        @log_operation("slow_operation")
        def slow_func():
            time.sleep(0.01)
            return "done"

        try:
            slow_func()
        finally:
            module_logger.removeHandler(handler)

        entries = [json.loads(line) for line in stream.getvalue().strip().split("\n")]
        completed = [e for e in entries if e["message"] == "Completed slow_operation"]
        assert len(completed) == 1
        assert completed[0]["duration_ms"] >= 5
        assert completed[0]["context"]["function"] == "slow_func"
