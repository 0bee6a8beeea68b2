"""
================================================================================
Amongst Tools Common Utilities
================================================================================

This module provides shared configuration management and logging setup for
all amongst tools.

Exports:
    - GlobalConfig: Singleton configuration manager
    - get_config: Convenience function to get configuration values
    - init_logger: Function to initialize loguru logger with standard settings

Usage:
    from amongst_tools.common import get_config, init_logger

    init_logger()
    bind_ip = get_config("mongodb.bind_ip", "127.0.0.1")

================================================================================
"""

import os
import sys
from typing import Any, Dict, Optional
import yaml
from loguru import logger


class AmongstError(Exception):
    """Base exception for amongst tools."""
    pass


class ConfigurationError(AmongstError):
    """Raised when configuration loading fails."""
    pass


# ============================================================
# Configuration Management
# ============================================================

# Environment variables mapped onto dot-notation configuration keys
ENV_MAPPING = {
    "MONGODB_BINARY_PATH": "mongodb.binary_path",
    "MONGODB_SEARCH_PATTERN": "mongodb.search_pattern",
    "MONGODB_BIND_IP": "mongodb.bind_ip",
    "AMONGST_LOG_LEVEL": "logging.level",
    "AMONGST_LOG_FILE": "logging.file",
}


class GlobalConfig:
    """
    Singleton class to manage global configuration for amongst tools.

    Loads settings from environment variables and YAML configuration files.
    Environment variables take precedence over file-based configuration.
    """
    _instance: Optional["GlobalConfig"] = None
    _config: Dict[str, Any] = {}
    _initialized: bool = False

    def __new__(cls, config_path: Optional[str] = None) -> "GlobalConfig":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        if self._initialized:
            return
        self._config = {}
        self._load_configs(config_path)
        self._initialized = True

    def _load_configs(self, config_path: Optional[str] = None) -> None:
        """
        Loads configuration from a YAML file and environment variables.
        """
        if config_path:
            config_paths = [config_path]
        else:
            config_paths = [
                os.environ.get("AMONGST_CONFIG", ""),
                "config/amongst.yaml",
                os.path.join(os.path.dirname(__file__), "..", "..", "config", "amongst.yaml"),
            ]

        for path in config_paths:
            if path and os.path.exists(path):
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        file_config = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigurationError(
                        f"Invalid YAML in configuration file {path}: {e}"
                    ) from e
                self._config.update(file_config)
                logger.debug(f"Loaded configuration from {path}")
                break

        for env_key, config_key in ENV_MAPPING.items():
            if env_key in os.environ:
                self._set_nested(config_key, os.environ[env_key])

    def _set_nested(self, key: str, value: Any) -> None:
        """
        Sets a nested configuration value using dot notation.
        """
        keys = key.split(".")
        current = self._config
        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]
        current[keys[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieves a configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "mongodb.binary_path")
            default: Default value if key is not found

        Returns:
            Configuration value or default
        """
        value = self._config
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """
        Sets a configuration value.
        """
        self._set_nested(key, value)

    @classmethod
    def reset(cls) -> None:
        """
        Drops the singleton so the next access reloads file and environment.
        """
        cls._instance = None
        cls._initialized = False


# Global config instance
_global_config: Optional[GlobalConfig] = None


def get_config(key: str, default: Any = None) -> Any:
    """
    Convenience function to get a configuration value.

    Example:
        binary_path = get_config("mongodb.binary_path")
    """
    global _global_config
    if _global_config is None:
        _global_config = GlobalConfig()
    return _global_config.get(key, default)


def set_config(key: str, value: Any) -> None:
    """
    Convenience function to set a configuration value.
    """
    global _global_config
    if _global_config is None:
        _global_config = GlobalConfig()
    _global_config.set(key, value)


def reset_config() -> None:
    """
    Forgets loaded configuration. Mostly useful in tests.
    """
    global _global_config
    _global_config = None
    GlobalConfig.reset()


# ============================================================
# Logging Setup
# ============================================================

_logger_initialized = False


def init_logger(
    level: str = None,
    format_string: str = None,
    log_file: str = None
) -> None:
    """
    Initializes the loguru logger with standard settings.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        format_string: Log format string. Uses default if not provided.
        log_file: Optional file path to write logs to.

    Example:
        init_logger()  # Use defaults
        init_logger(level="DEBUG", log_file="logs/amongst.log")
    """
    global _logger_initialized

    if _logger_initialized:
        return

    # Remove default handler
    logger.remove()

    level = (level or get_config("logging.level", "INFO")).upper()
    format_string = format_string or get_config(
        "logging.format",
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=format_string,
        level=level,
        colorize=True,
    )

    log_file = log_file or get_config("logging.file")
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        logger.add(
            log_file,
            format=format_string,
            level=level,
            rotation=get_config("logging.rotation", "10 MB"),
            retention=get_config("logging.retention", "7 days"),
        )

    _logger_initialized = True
    logger.debug("Logger initialized successfully")


# Export public API
__all__ = [
    "AmongstError",
    "ConfigurationError",
    "GlobalConfig",
    "get_config",
    "set_config",
    "reset_config",
    "init_logger",
]
