"""Tests for pharmadesk logging configuration."""

import json
import logging

import pytest

from pharmadesk.utils.logging_config import (
    LogFormat,
    LoggingConfig,
    LoggingManager,
    LogLevel,
    SensitiveDataFilter,
    StructuredFormatter,
    get_logger,
    setup_logging,
)


def _record(msg, *args, **extra):
    record = logging.LogRecord("pharmadesk.test", logging.INFO, __file__, 10, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def reset_pharmadesk_logger():
    """Restore the pharmadesk logger after each test."""
    logger = logging.getLogger("pharmadesk")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestLoggingConfig:
    """Test cases for LoggingConfig."""

    def test_from_dict(self):
        """Test building from the logging configuration section."""
        config = LoggingConfig.from_dict({"level": "debug", "format": "json", "log_directory": "/tmp/x"})

        assert config.level == LogLevel.DEBUG
        assert config.format_type == LogFormat.JSON
        assert config.log_directory == "/tmp/x"
        assert config.enable_file_logging is True

    def test_from_empty_dict(self):
        """Test defaults for an empty section."""
        config = LoggingConfig.from_dict({})

        assert config.level == LogLevel.INFO
        assert config.log_directory == "~/.pharmadesk/logs"

    @pytest.mark.parametrize("level", ["LOUD", None, 10])
    def test_invalid_level_falls_back_to_info(self, level, caplog):
        """Test that unknown or missing levels fall back to INFO with a warning."""
        with caplog.at_level(logging.WARNING, logger="pharmadesk.utils.logging_config"):
            config = LoggingConfig.from_dict({"level": level})

        assert config.level == LogLevel.INFO
        assert "Invalid log level" in caplog.text


class TestSensitiveDataFilter:
    """Test cases for SensitiveDataFilter."""

    @pytest.fixture
    def redactor(self):
        return SensitiveDataFilter(LoggingConfig().sensitive_data_patterns)

    def test_redacts_phone_numbers(self, redactor):
        """Test that patient phone numbers do not reach the logs."""
        record = _record("Imported patient 9876543210 for migration m1")

        assert redactor.filter(record) is True
        assert record.msg == "Imported patient [REDACTED] for migration m1"

    def test_keeps_longer_numbers(self, redactor):
        """Test that numbers longer than a phone number are kept."""
        record = _record("Batch 123456789012 imported")

        redactor.filter(record)

        assert record.msg == "Batch 123456789012 imported"

    def test_redacts_secrets_in_args(self, redactor):
        """Test redaction of formatting arguments."""
        record = _record("Connecting with %s", "token=abc123")

        redactor.filter(record)

        assert record.args == ("[REDACTED]",)


class TestStructuredFormatter:
    """Test cases for StructuredFormatter."""

    def test_json_output_with_extra(self):
        """Test that extra fields land under extra."""
        record = _record("Starting operation: import", operation_id="abc12345")

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "pharmadesk.test"
        assert data["message"] == "Starting operation: import"
        assert data["extra"] == {"operation_id": "abc12345"}


class TestLoggingManager:
    """Test cases for LoggingManager."""

    def test_setup_console_and_file(self, tmp_path):
        """Test that both handlers are installed on the pharmadesk logger."""
        manager = setup_logging(LoggingConfig(level=LogLevel.DEBUG, log_directory=str(tmp_path)))

        logger = logging.getLogger("pharmadesk")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert isinstance(manager, LoggingManager)

        get_logger("migration").info("written to file")
        for handler in logger.handlers:
            handler.flush()

        lines = (tmp_path / "pharmadesk.log").read_text().splitlines()
        assert json.loads(lines[-1])["message"] == "written to file"
        assert json.loads(lines[-1])["logger"] == "pharmadesk.migration"

    def test_setup_without_file_logging(self, tmp_path):
        """Test console-only logging."""
        setup_logging(LoggingConfig(enable_file_logging=False, log_directory=str(tmp_path / "logs")))

        assert len(logging.getLogger("pharmadesk").handlers) == 1
        assert not (tmp_path / "logs").exists()

    def test_setup_is_idempotent(self, tmp_path):
        """Test that a manager installs its handlers once."""
        manager = LoggingManager(LoggingConfig(enable_file_logging=False))

        manager.setup_logging()
        manager.setup_logging()

        assert len(logging.getLogger("pharmadesk").handlers) == 1

    def test_get_logger_namespacing(self):
        """Test logger names under the pharmadesk namespace."""
        manager = LoggingManager()

        assert manager.get_logger("commands").name == "pharmadesk.commands"
        assert manager.get_logger("pharmadesk.store").name == "pharmadesk.store"

    def test_operation_logging(self, caplog):
        """Test operation start and end records."""
        manager = LoggingManager()
        logger = manager.get_logger("test")

        with caplog.at_level(logging.INFO, logger="pharmadesk"):
            operation_id = manager.log_operation_start(logger, "import", file="stock.csv")
            manager.log_operation_end(logger, "import", operation_id, success=False)

        start, end = caplog.records
        assert len(operation_id) == 8
        assert start.message == "Starting operation: import"
        assert start.file == "stock.csv"
        assert end.levelno == logging.ERROR
        assert end.message == "Operation failed: import"
        assert end.operation_id == operation_id
