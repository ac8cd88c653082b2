"""Configuration management for JuiceKeeper."""

from juicekeeper.config.loader import ConfigurationError, get_config, load_config, reload_config
from juicekeeper.config.persistence import PreferencesFile
from juicekeeper.config.settings import PREFERENCE_FIELDS, MonitorSettings, Preferences
from juicekeeper.config.store import CALIBRATION_FIELD, SettingsStore

__all__ = [
    "CALIBRATION_FIELD",
    "ConfigurationError",
    "MonitorSettings",
    "PREFERENCE_FIELDS",
    "Preferences",
    "PreferencesFile",
    "SettingsStore",
    "get_config",
    "load_config",
    "reload_config",
]
