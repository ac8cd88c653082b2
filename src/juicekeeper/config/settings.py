"""Pydantic settings models for JuiceKeeper configuration."""

from __future__ import annotations

import math
import os
from typing import Annotated, Any, Callable, Dict, Literal, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


def clamp_to(
    minimum: float, maximum: float, cast: Callable[[Any], Any]
) -> Callable[[Any], Any]:
    """Build a before-validator that coerces a value and clamps it into range.

    Values that cannot be coerced are passed through untouched so pydantic
    reports them as ordinary type errors.
    """

    def _clamp(value: Any) -> Any:
        if isinstance(value, bool):
            return value
        try:
            number = float(value)
        except (TypeError, ValueError):
            return value
        if math.isnan(number):
            return value
        return cast(min(max(number, minimum), maximum))

    return _clamp


ALERT_THRESHOLD_RANGE = (1, 100)
POLLING_INTERVAL_RANGE = (1.0, 600.0)
TEMPERATURE_THRESHOLD_RANGE = (30.0, 50.0)
REMINDER_INTERVAL_RANGE = (1, 60)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

AlertThreshold = Annotated[int, BeforeValidator(clamp_to(*ALERT_THRESHOLD_RANGE, round))]
PollingInterval = Annotated[float, BeforeValidator(clamp_to(*POLLING_INTERVAL_RANGE, float))]
TemperatureThreshold = Annotated[
    float, BeforeValidator(clamp_to(*TEMPERATURE_THRESHOLD_RANGE, float))
]
ReminderInterval = Annotated[int, BeforeValidator(clamp_to(*REMINDER_INTERVAL_RANGE, round))]


class Preferences(BaseModel):
    """User preferences that steer alerting.

    Numeric values are clamped into their allowed range instead of being
    rejected. Instances are immutable; the settings store swaps in a new
    instance for every accepted change.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    alert_threshold: AlertThreshold = Field(
        default=80,
        description="Battery percentage at which the charge alert fires (1-100)",
    )
    polling_interval_seconds: PollingInterval = Field(
        default=15.0,
        description="How often the battery sensor is polled (1-600 seconds)",
    )
    temperature_threshold_celsius: TemperatureThreshold = Field(
        default=45.0,
        description="Battery temperature that triggers the overheating alert (30-50 C)",
    )
    reminder_interval_minutes: ReminderInterval = Field(
        default=5,
        description="Minutes between reminders while an alert condition persists (1-60)",
    )
    sound_enabled: bool = Field(default=True, description="Play a sound with notifications")
    wake_display_on_alert: bool = Field(
        default=True,
        description="Nudge the display awake when an alert fires",
    )
    keep_awake_while_charging: bool = Field(
        default=False,
        description="Prevent idle sleep while charging below the alert threshold",
    )
    temperature_alert_enabled: bool = Field(
        default=True,
        description="Enable the overheating alert",
    )
    reminder_enabled: bool = Field(
        default=False,
        description="Repeat alerts while the alert condition persists",
    )


PREFERENCE_FIELDS = tuple(Preferences.model_fields)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the YAML file named in CONFIG_PATH.

    The file is parsed once per settings instantiation and only keys that
    are settings fields are handed to pydantic. Read errors yield no values
    here; ``load_config`` reports them before the settings are built.
    """

    def __init__(self, settings_cls: Type[BaseSettings], path: Optional[str] = None) -> None:
        super().__init__(settings_cls)
        self.path = path if path is not None else os.environ.get("CONFIG_PATH")
        self._values: Optional[Dict[str, Any]] = None

    @property
    def yaml_values(self) -> Dict[str, Any]:
        if self._values is None:
            self._values = self._parse()
        return self._values

    def _parse(self) -> Dict[str, Any]:
        if not self.path:
            return {}
        try:
            with open(self.path) as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            return {}
        if not isinstance(document, dict):
            return {}
        fields = self.settings_cls.model_fields
        return {key: value for key, value in document.items() if key in fields}

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        return self.yaml_values.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return dict(self.yaml_values)


class MonitorSettings(BaseSettings):
    """Process configuration: preference defaults plus logging and file paths.

    Sources, highest priority first: JUICEKEEPER_* environment variables,
    the .env file, the YAML file named by CONFIG_PATH, field defaults.

    User preferences saved at runtime (see ``PreferencesFile``) are layered on
    top of these values when the settings store is built.
    """

    model_config = SettingsConfigDict(
        env_prefix="JUICEKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Alerting preferences
    alert_threshold: AlertThreshold = 80
    polling_interval_seconds: PollingInterval = 15.0
    temperature_threshold_celsius: TemperatureThreshold = 45.0
    reminder_interval_minutes: ReminderInterval = 5
    sound_enabled: bool = True
    wake_display_on_alert: bool = True
    keep_awake_while_charging: bool = False
    temperature_alert_enabled: bool = True
    reminder_enabled: bool = False

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log output format: json (log shippers) or text (terminal)",
    )

    # Files
    preferences_path: Optional[str] = Field(
        default=None,
        description="JSON file where preference changes are saved (disabled if not set)",
    )
    health_file: str = Field(
        default="/tmp/juicekeeper-health",
        description="Path of the JSON health status file",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Order sources: init, environment, .env, then the YAML file."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Upper-case the level name; WARN is accepted as WARNING."""
        level = v.upper()
        level = "WARNING" if level == "WARN" else level
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(LOG_LEVELS)}"
            )
        return level

    def preferences(self, overrides: Optional[Dict[str, Any]] = None) -> Preferences:
        """Build the preference model, optionally layering saved overrides.

        Args:
            overrides: Values read from the preferences file. Unknown keys are
                ignored and out-of-range values are clamped.
        """
        data = self.model_dump(include=set(PREFERENCE_FIELDS))
        if overrides:
            data.update({k: v for k, v in overrides.items() if k in PREFERENCE_FIELDS})
        return Preferences.model_validate(data)
