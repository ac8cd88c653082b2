"""Shared enumerations for the JuiceKeeper models."""

from enum import Enum


class AlertKind(str, Enum):
    """Kind of user-facing notification."""

    THRESHOLD_REACHED = "threshold_reached"
    OVERHEATING = "overheating"
    THRESHOLD_REMINDER = "threshold_reminder"
    TEMPERATURE_REMINDER = "temperature_reminder"
    CALIBRATION_COMPLETE = "calibration_complete"


class BatteryStatus(str, Enum):
    """Coarse battery status used for status lines."""

    NORMAL = "normal"
    LOW = "low"
    CHARGING = "charging"
    FULL = "full"
    OVERHEATING = "overheating"
