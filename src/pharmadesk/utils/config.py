"""Configuration utilities for pharmadesk."""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

from .logging_config import LogLevel, is_valid_log_level

console = Console()


def _default_config_dir() -> Path:
    home = os.environ.get("PHARMADESK_HOME")
    return Path(home).expanduser() if home else Path.home() / ".pharmadesk"


CONFIG_DIR = _default_config_dir()
CONFIG_FILE_YAML = CONFIG_DIR / "config.yaml"

# Default record store configuration
DEFAULT_STORE_CONFIG = {
    "backend": "filesystem",  # Options: "memory", "filesystem", "dynamodb"
    "filesystem": {
        "path": None,  # Defaults to <config dir>/data
    },
    "dynamodb": {
        "table_prefix": "pharmadesk_",
        "region": None,  # Will use profile region if not specified
        "profile": None,
    },
}

# Default retry configuration for store calls
DEFAULT_RETRY_CONFIG = {
    "max_attempts": 3,
    "base_delay_ms": 1000,  # Wait before attempt n is base_delay_ms * n
}

# Default migration configuration
DEFAULT_MIGRATION_CONFIG = {
    "recent_limit": 10,
    "invalid_threshold": 0.1,  # Share of invalid rows that aborts an import
}

# Default logging configuration
DEFAULT_LOGGING_CONFIG = {
    "level": "INFO",
    "log_directory": None,  # Defaults to <config dir>/logs
}

DEFAULT_CONFIG = {
    "store": DEFAULT_STORE_CONFIG,
    "retry": DEFAULT_RETRY_CONFIG,
    "migration": DEFAULT_MIGRATION_CONFIG,
    "logging": DEFAULT_LOGGING_CONFIG,
}


class Config:
    """Manages pharmadesk configuration stored as YAML."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory holding ``config.yaml``. Defaults to
                ``$PHARMADESK_HOME`` or ``~/.pharmadesk``.
        """
        self.config_dir = Path(config_dir) if config_dir else _default_config_dir()
        self.config_file = self.config_dir / "config.yaml"
        self.config_data: Dict[str, Any] = {}
        self._config_loaded = False

    def _ensure_config_loaded(self):
        """Ensure configuration is loaded from file."""
        if not self._config_loaded:
            self._load_config()
            self._config_loaded = True

    def _load_config(self):
        """Load configuration from the YAML file, if there is one."""
        if not self.config_file.exists():
            self.config_data = {}
            return

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                self.config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            console.print(
                f"[red]Error: Configuration file {self.config_file} is not valid YAML: {e}[/red]"
            )
            self.config_data = {}
        except OSError as e:
            console.print(f"[red]Error reading configuration file {self.config_file}: {e}[/red]")
            self.config_data = {}

    def save(self):
        """Save the configuration to the YAML file."""
        self._ensure_config_loaded()
        if not self.config_dir.exists():
            self.config_dir.mkdir(parents=True)
            console.print(f"Created configuration directory: {self.config_dir}")

        try:
            with open(self.config_file, "w", encoding="utf-8") as f:
                yaml.dump(self.config_data, f, default_flow_style=False, indent=2, sort_keys=False)
        except OSError as e:
            console.print(f"[red]Error saving configuration: {e}[/red]")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value with dot notation support.

        Args:
            key: Configuration key (supports dot notation like "store.backend")
            default: Default value if key doesn't exist

        Returns:
            Configuration value
        """
        self._ensure_config_loaded()

        value: Any = self.config_data
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any):
        """
        Set a configuration value and save the file.

        Args:
            key: Configuration key (supports dot notation)
            value: Configuration value
        """
        self._ensure_config_loaded()

        *parents, last = key.split(".")
        section = self.config_data
        for k in parents:
            if not isinstance(section.get(k), dict):
                section[k] = {}
            section = section[k]
        section[last] = value

        self.save()

    def get_all(self) -> Dict[str, Any]:
        """Get the effective configuration, defaults included."""
        return {
            "store": self.get_store_config(),
            "retry": self.get_retry_config(),
            "migration": self.get_migration_config(),
            "logging": self.get_logging_config(),
        }

    def _section(self, name: str) -> Dict[str, Any]:
        self._ensure_config_loaded()
        section = self.config_data.get(name)
        return _deep_merge(DEFAULT_CONFIG[name], section if isinstance(section, dict) else {})

    def get_store_config(self) -> Dict[str, Any]:
        """
        Get record store configuration with defaults and environment variable overrides.

        Returns:
            Store configuration dictionary
        """
        store_config = self._section("store")

        store_config["backend"] = os.environ.get(
            "PHARMADESK_STORE_BACKEND", store_config["backend"]
        )
        path = os.environ.get("PHARMADESK_STORE_PATH", store_config["filesystem"].get("path"))
        store_config["filesystem"]["path"] = os.path.expanduser(path or str(self.config_dir / "data"))

        return store_config

    def get_retry_config(self) -> Dict[str, Any]:
        """
        Get retry configuration with defaults and environment variable overrides.

        Returns:
            Retry configuration dictionary
        """
        retry_config = self._section("retry")
        retry_config["max_attempts"] = self._get_env_int(
            "PHARMADESK_RETRY_MAX_ATTEMPTS", retry_config["max_attempts"]
        )
        retry_config["base_delay_ms"] = self._get_env_int(
            "PHARMADESK_RETRY_BASE_DELAY_MS", retry_config["base_delay_ms"]
        )
        return retry_config

    def get_migration_config(self) -> Dict[str, Any]:
        """Get migration configuration with defaults."""
        return self._section("migration")

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration with defaults and environment variable overrides."""
        logging_config = self._section("logging")
        level = self._raw_log_level()
        if is_valid_log_level(level):
            logging_config["level"] = level.strip().upper()
        else:
            console.print(f"Warning: Invalid log level {level!r}. Using default: INFO")
            logging_config["level"] = LogLevel.INFO.value
        logging_config["log_directory"] = os.path.expanduser(
            logging_config["log_directory"] or str(self.config_dir / "logs")
        )
        return logging_config

    def _raw_log_level(self) -> Any:
        return os.environ.get("PHARMADESK_LOG_LEVEL", self._section("logging")["level"])

    def _get_env_int(self, env_var: str, default: int) -> int:
        """
        Get integer value from environment variable.

        Args:
            env_var: Environment variable name
            default: Default value if env var is not set

        Returns:
            Integer value
        """
        value = os.environ.get(env_var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            console.print(
                f"Warning: Invalid integer value for {env_var}: {value}. Using default: {default}"
            )
            return default

    def validate(self) -> List[str]:
        """
        Validate the effective configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        store_config = self.get_store_config()
        backend = store_config.get("backend")
        if backend not in ("memory", "filesystem", "dynamodb"):
            errors.append(
                f"store.backend must be one of memory, filesystem, dynamodb, got '{backend}'"
            )
        if backend == "filesystem" and not store_config["filesystem"].get("path"):
            errors.append("store.filesystem.path is required for the filesystem backend")

        retry_config = self.get_retry_config()
        if not isinstance(retry_config["max_attempts"], int) or retry_config["max_attempts"] < 1:
            errors.append("retry.max_attempts must be a positive integer")
        if not isinstance(retry_config["base_delay_ms"], int) or retry_config["base_delay_ms"] < 0:
            errors.append("retry.base_delay_ms must be a non-negative integer")

        threshold = self.get_migration_config().get("invalid_threshold")
        if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            errors.append("migration.invalid_threshold must be between 0 and 1")

        if not is_valid_log_level(self._raw_log_level()):
            errors.append(
                f"logging.level must be one of {', '.join(LogLevel.__members__)}, "
                f"got '{self._raw_log_level()}'"
            )

        return errors


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries without modifying either."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result
