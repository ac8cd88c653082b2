"""Shared fixtures: virtual timers, scripted sensor and recording collaborators."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
import structlog

from juicekeeper.config import Preferences, SettingsStore
from juicekeeper.engine import MonitoringEngine
from juicekeeper.models import Snapshot
from juicekeeper.power import SleepAssertion, SleepAssertionError


@dataclass
class _Job:
    interval: float
    next_run: float
    func: Callable[[], None]


class VirtualTimers:
    """``Timers`` implementation driven by a virtual clock."""

    def __init__(self) -> None:
        self.now = 0.0
        self.jobs: Dict[str, _Job] = {}
        self.scheduled: List[Tuple[str, float]] = []

    def schedule(self, job_id: str, interval_seconds: float, func: Callable[[], None]) -> None:
        self.jobs[job_id] = _Job(interval_seconds, self.now + interval_seconds, func)
        self.scheduled.append((job_id, interval_seconds))

    def cancel(self, job_id: str) -> None:
        self.jobs.pop(job_id, None)

    def is_scheduled(self, job_id: str) -> bool:
        return job_id in self.jobs

    def interval(self, job_id: str) -> Optional[float]:
        job = self.jobs.get(job_id)
        return job.interval if job else None

    def advance(self, seconds: float) -> None:
        """Move the clock forward, running every job that falls due in order."""
        target = self.now + seconds
        while True:
            due = [
                (job.next_run, job_id)
                for job_id, job in self.jobs.items()
                if job.next_run <= target + 1e-9
            ]
            if not due:
                break
            next_run, job_id = min(due)
            job = self.jobs[job_id]
            self.now = next_run
            job.next_run += job.interval
            job.func()
        self.now = target


class ScriptedReader:
    """Sensor reader returning whatever the test put in ``next``."""

    def __init__(self) -> None:
        self.next: Optional[Snapshot] = None
        self.reads = 0

    def read(self) -> Optional[Snapshot]:
        self.reads += 1
        return self.next


class RecordingNotifier:
    """Records every notification as ``(kind, *args)``."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []

    def notify_threshold_reached(self, level, threshold, sound):
        self.calls.append(("threshold_reached", level, threshold, sound))

    def notify_overheating(self, temperature, threshold, sound):
        self.calls.append(("overheating", temperature, threshold, sound))

    def notify_threshold_reminder(self, level, threshold, sound):
        self.calls.append(("threshold_reminder", level, threshold, sound))

    def notify_temperature_reminder(self, temperature, threshold, sound):
        self.calls.append(("temperature_reminder", temperature, threshold, sound))

    def notify_calibration_complete(self, level, restored_threshold, sound):
        self.calls.append(("calibration_complete", level, restored_threshold, sound))

    def kinds(self) -> List[str]:
        return [call[0] for call in self.calls]

    def count(self, kind: str) -> int:
        return self.kinds().count(kind)


class FakeAssertionBackend:
    """Counts backend calls; optionally refuses to acquire."""

    def __init__(self) -> None:
        self.acquired = 0
        self.released = 0
        self.fail_acquire = False
        self.fail_release = False

    def acquire(self) -> None:
        if self.fail_acquire:
            raise SleepAssertionError("refused")
        self.acquired += 1

    def release(self) -> None:
        self.released += 1
        if self.fail_release:
            raise SleepAssertionError("release failed")


class EngineHarness:
    """A started engine wired to fakes, with helpers to feed readings."""

    def __init__(self, **preferences: Any) -> None:
        self.store = SettingsStore(Preferences(**preferences))
        self.reader = ScriptedReader()
        self.notifier = RecordingNotifier()
        self.backend = FakeAssertionBackend()
        self.sleep = SleepAssertion(self.backend)
        self.timers = VirtualTimers()
        self.wakes: List[float] = []
        self.polled: List[Optional[Snapshot]] = []
        self.engine = MonitoringEngine(
            store=self.store,
            reader=self.reader,
            notifier=self.notifier,
            sleep_assertion=self.sleep,
            timers=self.timers,
            wake_display=lambda: self.wakes.append(self.timers.now),
            on_poll=self.polled.append,
        )

    @property
    def state(self):
        return self.engine.state

    def start(self, snapshot: Optional[Snapshot] = None) -> "EngineHarness":
        self.reader.next = snapshot
        self.engine.start()
        return self

    def poll(
        self,
        percentage: int = 50,
        charging: bool = True,
        temperature: Optional[float] = None,
        fully_charged: bool = False,
    ) -> Snapshot:
        snapshot = Snapshot(
            percentage=percentage,
            is_charging=charging,
            is_fully_charged=fully_charged,
            temperature_celsius=temperature,
        )
        self.reader.next = snapshot
        self.engine.poll()
        return snapshot

    def poll_unavailable(self) -> None:
        self.reader.next = None
        self.engine.poll()

    def feed(self, *levels: int, charging: bool = True, temperature: Optional[float] = None) -> None:
        for level in levels:
            self.poll(level, charging=charging, temperature=temperature)

    def feed_temperatures(self, *temperatures: float, percentage: int = 50) -> None:
        for temperature in temperatures:
            self.poll(percentage, charging=False, temperature=temperature)


@pytest.fixture
def make_engine():
    """Factory for started engine harnesses with the given preferences."""
    harnesses: List[EngineHarness] = []

    def factory(snapshot: Optional[Snapshot] = None, **preferences: Any) -> EngineHarness:
        harness = EngineHarness(**preferences).start(snapshot)
        harnesses.append(harness)
        return harness

    yield factory

    for harness in harnesses:
        harness.engine.shutdown()


@pytest.fixture
def virtual_timers() -> VirtualTimers:
    return VirtualTimers()


@pytest.fixture
def fake_backend() -> FakeAssertionBackend:
    return FakeAssertionBackend()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any ``configure_logging`` call so log output goes to captured stdout."""
    yield
    structlog.reset_defaults()
