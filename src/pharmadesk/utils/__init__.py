"""Core utility modules for pharmadesk."""

# Configuration utilities
from .config import CONFIG_DIR, CONFIG_FILE_YAML, DEFAULT_CONFIG, Config

# Logging utilities
from .logging_config import LoggingConfig, get_logger, setup_logging

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE_YAML",
    "DEFAULT_CONFIG",
    "Config",
    "LoggingConfig",
    "get_logger",
    "setup_logging",
]
