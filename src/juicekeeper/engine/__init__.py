"""Monitoring and alerting engine."""

from juicekeeper.engine.calibration import CalibrationController
from juicekeeper.engine.monitor import (
    ASSERTION_OWNER,
    POLL_JOB,
    REMINDER_JOB,
    MonitoringEngine,
)
from juicekeeper.engine.state import (
    CALIBRATION_TARGET,
    CHARGE_HYSTERESIS,
    TEMPERATURE_HYSTERESIS,
    EngineState,
)

__all__ = [
    "ASSERTION_OWNER",
    "CALIBRATION_TARGET",
    "CHARGE_HYSTERESIS",
    "CalibrationController",
    "EngineState",
    "MonitoringEngine",
    "POLL_JOB",
    "REMINDER_JOB",
    "TEMPERATURE_HYSTERESIS",
]
