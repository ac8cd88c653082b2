"""Coarse status classification for a battery snapshot."""

from typing import Optional

from juicekeeper.models.enums import BatteryStatus
from juicekeeper.models.snapshot import Snapshot

LOW_BATTERY_PERCENT = 30


def classify_status(
    snapshot: Snapshot,
    temperature_threshold: Optional[float] = None,
) -> BatteryStatus:
    """Classify a snapshot into a single status.

    Priority: overheating, low, full, charging, normal. Overheating is only
    considered when a temperature threshold is given and the sensor reports
    a temperature.
    """
    temperature = snapshot.temperature
    if (
        temperature_threshold is not None
        and temperature.available
        and temperature.value >= temperature_threshold
    ):
        return BatteryStatus.OVERHEATING
    if snapshot.percentage <= LOW_BATTERY_PERCENT:
        return BatteryStatus.LOW
    if snapshot.is_fully_charged:
        return BatteryStatus.FULL
    if snapshot.is_charging:
        return BatteryStatus.CHARGING
    return BatteryStatus.NORMAL


def describe_status(snapshot: Snapshot) -> str:
    """One-line human readable description, e.g. ``Battery: 76% (charging, 31.2 C)``."""
    if snapshot.is_fully_charged:
        power = "fully charged"
    elif snapshot.is_charging:
        power = "charging"
    else:
        power = "on battery power"

    parts = [power]
    if snapshot.temperature.available:
        parts.append(f"{snapshot.temperature.value:.1f} C")
    if snapshot.maximum_capacity_percent is not None:
        parts.append(f"health {snapshot.maximum_capacity_percent}%")
    if snapshot.cycle_count is not None:
        parts.append(f"{snapshot.cycle_count} cycles")

    return f"Battery: {snapshot.percentage}% ({', '.join(parts)})"
