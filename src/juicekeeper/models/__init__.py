"""Data models for JuiceKeeper."""

from .enums import AlertKind, BatteryStatus
from .events import ConfigChange, EngineEvent, ReminderTick, SnapshotReceived
from .snapshot import Reading, Snapshot
from .status import LOW_BATTERY_PERCENT, classify_status, describe_status

__all__ = [
    "AlertKind",
    "BatteryStatus",
    "ConfigChange",
    "EngineEvent",
    "LOW_BATTERY_PERCENT",
    "Reading",
    "ReminderTick",
    "Snapshot",
    "SnapshotReceived",
    "classify_status",
    "describe_status",
]
