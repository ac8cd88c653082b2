"""Battery snapshot model produced by one successful sensor poll."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


@dataclass(frozen=True)
class Reading(Generic[T]):
    """A sensor metric that is either present or explicitly unavailable.

    Example:
        >>> Reading.of(41.5).available
        True
        >>> Reading.unavailable().value is None
        True
    """

    value: Optional[T] = None
    available: bool = False

    @classmethod
    def of(cls, value: T) -> "Reading[T]":
        return cls(value=value, available=True)

    @classmethod
    def unavailable(cls) -> "Reading[T]":
        return cls()

    @classmethod
    def from_optional(cls, value: Optional[T]) -> "Reading[T]":
        return cls.unavailable() if value is None else cls.of(value)


class Snapshot(BaseModel):
    """Battery state at one point in time.

    The health fields are descriptive only; alerting never looks at them.
    """

    model_config = ConfigDict(frozen=True)

    percentage: int = Field(..., description="Charge level in percent (0-100)")
    is_charging: bool = Field(default=False, description="Power adapter is charging the battery")
    is_fully_charged: bool = Field(default=False, description="Battery reports a full charge")
    temperature_celsius: Optional[float] = Field(
        default=None, description="Battery temperature, None when the sensor gives no reading"
    )

    cycle_count: Optional[int] = Field(default=None, description="Charge cycles so far")
    maximum_capacity_percent: Optional[int] = Field(
        default=None, description="Full charge capacity relative to design capacity"
    )
    maximum_capacity_mah: Optional[int] = Field(
        default=None, description="Full charge capacity in mAh"
    )
    design_capacity_mah: Optional[int] = Field(
        default=None, description="Design capacity in mAh"
    )
    condition: Optional[str] = Field(
        default=None, description="Condition text reported by the system (e.g. 'Good')"
    )

    @field_validator("percentage", mode="before")
    @classmethod
    def clamp_percentage(cls, v: object) -> object:
        """Clamp the charge level into 0-100; some firmwares report 101%."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return int(min(max(v, 0), 100))
        return v

    @property
    def temperature(self) -> Reading[float]:
        """Temperature as a tagged reading."""
        return Reading.from_optional(self.temperature_celsius)
