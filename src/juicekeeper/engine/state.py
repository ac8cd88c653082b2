"""Engine state and alerting constants."""

from dataclasses import dataclass
from typing import Optional

from juicekeeper.models.snapshot import Snapshot

# An active charge alert clears once the level drops below threshold - 5
CHARGE_HYSTERESIS = 5

# An overheating alert clears once the temperature drops below threshold - 2.0
TEMPERATURE_HYSTERESIS = 2.0

# Calibration charges to full before the configured threshold is restored
CALIBRATION_TARGET = 100


@dataclass
class EngineState:
    """Mutable state owned by ``MonitoringEngine``.

    Only the engine's serialized evaluation path writes to it.

    Attributes:
        last_percentage: Charge level of the most recent successful poll
        last_snapshot: Most recent successful poll
        charge_alert_fired: The current charge excursion was already alerted
        overheat_alert_fired: The current temperature excursion was already alerted
        charge_reminder_active: Charge reminders are being sent
        temp_reminder_active: Temperature reminders are being sent
    """

    last_percentage: Optional[int] = None
    last_snapshot: Optional[Snapshot] = None
    charge_alert_fired: bool = False
    overheat_alert_fired: bool = False
    charge_reminder_active: bool = False
    temp_reminder_active: bool = False

    @property
    def any_reminder_active(self) -> bool:
        return self.charge_reminder_active or self.temp_reminder_active
