"""Battery sensor access."""

from juicekeeper.sensors.health import CapacityHealth, derive_capacity
from juicekeeper.sensors.reader import PsutilSensorReader, SensorReader

__all__ = [
    "CapacityHealth",
    "PsutilSensorReader",
    "SensorReader",
    "derive_capacity",
]
