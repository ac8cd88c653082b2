"""Battery health derivation helpers."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CapacityHealth:
    """Full charge capacity relative to design capacity."""

    maximum_capacity_percent: Optional[int] = None
    maximum_capacity_mah: Optional[int] = None


def derive_capacity(
    raw_max_capacity_mah: Optional[int],
    design_capacity_mah: Optional[int],
) -> CapacityHealth:
    """Compute maximum capacity as a percentage of design capacity.

    The ratio is rounded and capped at 100. Results outside 1..100 are
    obviously bogus (uncalibrated gauges report 0 or huge values) and are
    dropped together with the mAh figure.
    """
    if not raw_max_capacity_mah or not design_capacity_mah or design_capacity_mah <= 0:
        return CapacityHealth()

    percent = min(100, round(raw_max_capacity_mah / design_capacity_mah * 100))
    if not 1 <= percent <= 100:
        return CapacityHealth()
    return CapacityHealth(
        maximum_capacity_percent=percent,
        maximum_capacity_mah=raw_max_capacity_mah,
    )


def condition_from_percent(maximum_capacity_percent: Optional[int]) -> Optional[str]:
    """Rough condition text when the system does not provide one."""
    if maximum_capacity_percent is None:
        return None
    if maximum_capacity_percent >= 80:
        return "Good"
    if maximum_capacity_percent >= 60:
        return "Fair"
    return "Service Recommended"
