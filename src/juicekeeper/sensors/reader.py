"""Battery sensor readers.

``SensorReader`` is the interface the monitoring engine polls. ``read()``
returns a ``Snapshot`` or None when no battery is present or the query
failed; it never raises.

``PsutilSensorReader`` is the production reader. It uses psutil for the
charge level and power source, and the Linux power-supply class in sysfs for
charging state, temperature and health details when those files exist.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Protocol

import psutil
import structlog

from juicekeeper.models.snapshot import Snapshot
from juicekeeper.sensors.health import condition_from_percent, derive_capacity

log = structlog.get_logger()

POWER_SUPPLY_ROOT = Path("/sys/class/power_supply")


class SensorReader(Protocol):
    """Synchronous battery query."""

    def read(self) -> Optional[Snapshot]:
        """Return the current snapshot, or None if no battery is available."""
        ...


class PsutilSensorReader:
    """Read the internal battery via psutil and sysfs."""

    def __init__(self, power_supply_root: Path = POWER_SUPPLY_ROOT) -> None:
        self.power_supply_root = power_supply_root

    def read(self) -> Optional[Snapshot]:
        try:
            return self._read()
        except Exception as e:
            log.warning("sensor_read_failed", error=str(e), error_type=type(e).__name__)
            return None

    def _read(self) -> Optional[Snapshot]:
        battery = psutil.sensors_battery()
        if battery is None:
            return None

        sysfs = self._read_sysfs()
        percentage = int(battery.percent)
        plugged = bool(battery.power_plugged)

        status = sysfs.get("status", "").lower()
        if status:
            is_charging = status == "charging"
            is_fully_charged = status == "full"
        else:
            is_charging = plugged and percentage < 100
            is_fully_charged = plugged and percentage >= 100

        capacity = derive_capacity(
            self._capacity_mah(sysfs, "full"),
            self._capacity_mah(sysfs, "full_design"),
        )
        condition = sysfs.get("health") or condition_from_percent(
            capacity.maximum_capacity_percent
        )

        return Snapshot(
            percentage=percentage,
            is_charging=is_charging,
            is_fully_charged=is_fully_charged,
            temperature_celsius=self._temperature(sysfs),
            cycle_count=_to_int(sysfs.get("cycle_count")),
            maximum_capacity_percent=capacity.maximum_capacity_percent,
            maximum_capacity_mah=capacity.maximum_capacity_mah,
            design_capacity_mah=self._capacity_mah(sysfs, "full_design"),
            condition=condition,
        )

    def _battery_dir(self) -> Optional[Path]:
        if not self.power_supply_root.is_dir():
            return None
        for entry in sorted(self.power_supply_root.iterdir()):
            type_file = entry / "type"
            if type_file.is_file() and type_file.read_text().strip() == "Battery":
                return entry
        return None

    def _read_sysfs(self) -> Dict[str, str]:
        battery_dir = self._battery_dir()
        if battery_dir is None:
            return {}

        values: Dict[str, str] = {}
        for name in (
            "status",
            "temp",
            "cycle_count",
            "health",
            "charge_full",
            "charge_full_design",
            "energy_full",
            "energy_full_design",
            "voltage_min_design",
        ):
            path = battery_dir / name
            try:
                values[name] = path.read_text().strip()
            except OSError:
                continue
        return values

    def _capacity_mah(self, sysfs: Dict[str, str], suffix: str) -> Optional[int]:
        charge = _to_int(sysfs.get(f"charge_{suffix}"))
        if charge:
            # microampere-hours
            return charge // 1000

        energy = _to_int(sysfs.get(f"energy_{suffix}"))
        voltage = _to_int(sysfs.get("voltage_min_design"))
        if energy and voltage:
            # microwatt-hours / microvolts
            return round(energy / voltage * 1000)
        return None

    def _temperature(self, sysfs: Dict[str, str]) -> Optional[float]:
        raw = _to_int(sysfs.get("temp"))
        if raw is not None:
            # tenths of a degree Celsius
            return raw / 10.0

        sensors = getattr(psutil, "sensors_temperatures", None)
        if sensors is None:
            return None
        for name, entries in sensors().items():
            if "bat" in name.lower() and entries:
                return float(entries[0].current)
        return None


def _to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
