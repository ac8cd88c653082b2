"""Configuration loading: YAML file, environment and .env."""

from __future__ import annotations

import os
import threading
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import ValidationError

from juicekeeper.config.settings import MonitorSettings

log = structlog.get_logger()


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


_config: Optional[MonitorSettings] = None
_config_lock = threading.Lock()


def load_yaml_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Read the YAML configuration file.

    Args:
        config_path: File to read. Falls back to the CONFIG_PATH environment
            variable; without either there is no file and ``{}`` is returned.

    Returns:
        The top-level mapping of the file (empty for an empty file).

    Raises:
        ConfigurationError: If the file is missing, unreadable, not valid
            YAML, or its top level is not a mapping.
    """
    path = config_path or os.environ.get("CONFIG_PATH")
    if not path:
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(
            f"Configuration file not found: {path}\n"
            "Point CONFIG_PATH at a YAML file, or unset it to configure through "
            "JUICEKEEPER_* environment variables only."
        )
    except PermissionError:
        raise ConfigurationError(f"Cannot read configuration file {path}: permission denied")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Configuration file {path} must contain key: value pairs, "
            f"got {type(data).__name__}"
        )

    unknown = sorted(set(data) - set(MonitorSettings.model_fields))
    if unknown:
        log.warning("config_unknown_keys", path=path, keys=unknown)
    return data


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[str]:
    """Turn pydantic errors into one line per setting, naming the env var to fix."""
    messages: List[str] = []
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        reason = error.get("msg", "Invalid value")
        if "input" in error and error["input"] is not None:
            messages.append(
                f"Configuration error: '{field}' {reason}, got: {error['input']!r} "
                f"(set JUICEKEEPER_{field.upper()} or '{field}:' in the config file)"
            )
        else:
            messages.append(f"Configuration error: '{field}' {reason}")
    return messages


def load_config(config_path: Optional[str] = None) -> MonitorSettings:
    """Load and validate configuration, and remember it for ``get_config``.

    Sources, highest priority first: JUICEKEEPER_* environment variables,
    a .env file, the YAML file, defaults. Out-of-range numbers are clamped,
    so only values of the wrong type fail validation.

    Args:
        config_path: YAML file to use instead of CONFIG_PATH.

    Raises:
        ConfigurationError: If the file cannot be read or a value is invalid.
    """
    global _config

    if config_path:
        os.environ["CONFIG_PATH"] = config_path

    # Read once up front so file problems surface as ConfigurationError;
    # MonitorSettings reads the file again through its settings source.
    load_yaml_config()

    try:
        settings = MonitorSettings()
    except ValidationError as e:
        raise ConfigurationError("\n".join(format_validation_errors(e.errors()))) from e

    with _config_lock:
        _config = settings
    log.debug("config_loaded", config_path=os.environ.get("CONFIG_PATH"))
    return settings


def get_config() -> MonitorSettings:
    """The configuration loaded last.

    Raises:
        ConfigurationError: If ``load_config`` has not run yet.
    """
    with _config_lock:
        if _config is None:
            raise ConfigurationError("Configuration not loaded. Call load_config() first.")
        return _config


def reload_config() -> MonitorSettings:
    """Forget the current configuration and load it again (SIGHUP)."""
    global _config
    with _config_lock:
        _config = None
    return load_config()
