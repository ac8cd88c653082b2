"""Power management side effects: idle-sleep assertion and display wake."""

from juicekeeper.power.assertion import (
    AssertionBackend,
    CaffeinateBackend,
    NullBackend,
    SleepAssertion,
    SleepAssertionError,
    SystemdInhibitBackend,
    platform_backend,
)
from juicekeeper.power.display import DisplayWaker

__all__ = [
    "AssertionBackend",
    "CaffeinateBackend",
    "DisplayWaker",
    "NullBackend",
    "SleepAssertion",
    "SleepAssertionError",
    "SystemdInhibitBackend",
    "platform_backend",
]
