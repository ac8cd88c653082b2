"""Events flowing into the monitoring engine's serialized mailbox."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from juicekeeper.models.snapshot import Snapshot


@dataclass(frozen=True)
class ConfigChange:
    """A single setting that changed value in the settings store.

    ``restored`` marks the alert threshold written back when calibration
    ends, as opposed to a change made by the user.
    """

    field: str
    old: Any
    new: Any
    restored: bool = False


@dataclass(frozen=True)
class SnapshotReceived:
    """Result of one sensor poll. ``snapshot`` is None when the sensor was unavailable."""

    snapshot: Optional[Snapshot]


@dataclass(frozen=True)
class ReminderTick:
    """The reminder timer fired."""


EngineEvent = Union[ConfigChange, SnapshotReceived, ReminderTick]
