"""Logging configuration for pharmadesk."""

import json
import logging
import logging.handlers
import os
import re
import sys
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def is_valid_log_level(value: Any) -> bool:
    """Check that a configured level names one of the LogLevel members."""
    return isinstance(value, str) and value.strip().upper() in LogLevel.__members__


def parse_log_level(value: Any) -> LogLevel:
    """Parse a configured level, falling back to INFO for unknown values."""
    if not is_valid_log_level(value):
        logging.getLogger(__name__).warning(f"Invalid log level {value!r}, using INFO")
        return LogLevel.INFO
    return LogLevel(value.strip().upper())


class LogFormat(str, Enum):
    """Log output formats."""

    SIMPLE = "simple"
    JSON = "json"


@dataclass
class LoggingConfig:
    """Configuration for logging system."""

    level: LogLevel = LogLevel.INFO
    format_type: LogFormat = LogFormat.SIMPLE
    enable_file_logging: bool = True
    enable_console_logging: bool = True
    log_directory: str = "~/.pharmadesk/logs"
    log_filename: str = "pharmadesk.log"
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_colors: bool = True
    log_aws_requests: bool = False
    sensitive_data_patterns: List[str] = field(
        default_factory=lambda: [
            r"(?<!\d)\d{10}(?!\d)",  # phone numbers
            r"(password|secret|token|credential)s?\s*[=:]\s*\S+",
        ]
    )

    @classmethod
    def from_dict(cls, logging_config: Dict[str, Any]) -> "LoggingConfig":
        """Build from the ``logging`` section of the configuration."""
        return cls(
            level=parse_log_level(logging_config.get("level", LogLevel.INFO.value)),
            format_type=LogFormat(logging_config.get("format", LogFormat.SIMPLE.value)),
            enable_file_logging=bool(logging_config.get("enable_file_logging", True)),
            log_directory=logging_config.get("log_directory", cls.log_directory),
        )


class SensitiveDataFilter(logging.Filter):
    """Filter to redact sensitive data from log messages."""

    def __init__(self, patterns: List[str]) -> None:
        """
        Initialize the filter with sensitive data patterns.

        Args:
            patterns: List of regex patterns to match sensitive data
        """
        super().__init__()
        self.patterns = patterns
        self.compiled_patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter log record to redact sensitive data.

        Returns:
            bool: Always True (we modify but don't filter out records)
        """
        if isinstance(record.msg, str):
            record.msg = self._redact_sensitive_data(record.msg)

        if record.args:
            record.args = tuple(
                self._redact_sensitive_data(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True

    def _redact_sensitive_data(self, text: str) -> str:
        for pattern in self.compiled_patterns:
            text = pattern.sub("[REDACTED]", text)
        return text


class StructuredFormatter(logging.Formatter):
    """Formatter writing one JSON object per log record."""

    STANDARD_ATTRS = {
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
        "lineno", "funcName", "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "exc_info", "exc_text", "stack_info", "taskName", "message",
    }  # fmt: skip

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_data = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self.STANDARD_ATTRS and not key.startswith("_")
        }
        if extra_data:
            log_data["extra"] = extra_data

        return json.dumps(log_data, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self) -> bool:
        """Check if the terminal supports colors."""
        return (
            hasattr(sys.stderr, "isatty")
            and sys.stderr.isatty()
            and os.environ.get("TERM") != "dumb"
        )

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{record.levelname:<8}{self.COLORS['RESET']}"
        else:
            level = f"{record.levelname:<8}"

        formatted = f"[{timestamp}] {level} - {record.name} - {record.getMessage()}"
        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


class LoggingManager:
    """
    Manager for pharmadesk logging configuration.

    Console output goes to stderr so command output on stdout stays
    machine-readable. The log file is rotated and written as JSON lines.
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._handlers_configured = False

    def setup_logging(self) -> None:
        """Set up handlers on the ``pharmadesk`` logger."""
        if self._handlers_configured:
            return

        root_logger = logging.getLogger("pharmadesk")
        root_logger.setLevel(getattr(logging, self.config.level.value))
        root_logger.handlers.clear()

        if self.config.enable_console_logging:
            root_logger.addHandler(self._create_console_handler())

        if self.config.enable_file_logging:
            log_dir = Path(self.config.log_directory).expanduser()
            log_dir.mkdir(parents=True, exist_ok=True)
            root_logger.addHandler(self._create_file_handler(log_dir))

        self._configure_aws_logging()
        self._handlers_configured = True

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(getattr(logging, self.config.level.value))

        formatter: logging.Formatter
        if self.config.format_type == LogFormat.JSON:
            formatter = StructuredFormatter()
        else:
            formatter = ColoredConsoleFormatter(self.config.console_colors)
        handler.setFormatter(formatter)

        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))
        return handler

    def _create_file_handler(self, log_dir: Path) -> logging.Handler:
        """Create rotating file handler."""
        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_dir / self.config.log_filename),
            maxBytes=self.config.max_file_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(StructuredFormatter())

        if self.config.sensitive_data_patterns:
            handler.addFilter(SensitiveDataFilter(self.config.sensitive_data_patterns))
        return handler

    def _configure_aws_logging(self) -> None:
        """Configure AWS SDK logging."""
        for logger_name in ("boto3", "botocore", "aioboto3", "aiobotocore", "urllib3"):
            logging.getLogger(logger_name).setLevel(
                logging.DEBUG if self.config.log_aws_requests else logging.WARNING
            )

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get a logger under the ``pharmadesk`` namespace.

        Args:
            name: Logger name (usually module name)
        """
        full_name = name if name.startswith("pharmadesk") else f"pharmadesk.{name}"
        return logging.getLogger(full_name)

    def log_operation_start(self, logger: logging.Logger, operation: str, **context) -> str:
        """
        Log the start of an operation with context.

        Returns:
            str: Operation ID for tracking
        """
        operation_id = str(uuid.uuid4())[:8]
        logger.info(
            f"Starting operation: {operation}",
            extra={"operation_id": operation_id, "operation": operation, **context},
        )
        return operation_id

    def log_operation_end(
        self,
        logger: logging.Logger,
        operation: str,
        operation_id: str,
        success: bool = True,
        **context,
    ) -> None:
        """Log the end of an operation."""
        level = logging.INFO if success else logging.ERROR
        status = "completed" if success else "failed"
        logger.log(
            level,
            f"Operation {status}: {operation}",
            extra={"operation_id": operation_id, "operation": operation, "success": success, **context},
        )


# Global logging manager instance
_global_logging_manager: Optional[LoggingManager] = None


def get_logging_manager() -> LoggingManager:
    """Get the global logging manager instance."""
    global _global_logging_manager
    if _global_logging_manager is None:
        _global_logging_manager = LoggingManager()
    return _global_logging_manager


def setup_logging(config: Optional[LoggingConfig] = None) -> LoggingManager:
    """
    Set up pharmadesk logging.

    Args:
        config: Logging configuration
    """
    global _global_logging_manager
    _global_logging_manager = LoggingManager(config)
    _global_logging_manager.setup_logging()
    return _global_logging_manager


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``pharmadesk`` namespace."""
    return get_logging_manager().get_logger(name)
