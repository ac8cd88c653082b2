"""Battery monitoring engine.

The engine polls the sensor on a timer and turns readings into alerts:

- a charge machine that fires once when the level crosses the threshold
  upwards and re-arms after the level drops 5 points below it
- a temperature machine that fires whenever the pack is at or above the
  temperature threshold and re-arms 2 C below it
- reminders repeating either alert while its condition persists
- calibration mode, which raises the effective threshold to 100% until the
  battery is full once
- arbitration of the idle-sleep assertion (held while charging below the
  effective threshold when "keep awake while charging" is on)

Every state change runs through a FIFO mailbox drained by a single consumer.
Sensor polls, reminder ticks and settings changes may arrive on any thread
(including re-entrantly from inside an evaluation); each is processed to
completion before the next one starts.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Deque, Optional

import structlog

from juicekeeper.config.settings import Preferences
from juicekeeper.config.store import CALIBRATION_FIELD, SettingsStore
from juicekeeper.delivery.manager import Notifier
from juicekeeper.engine.calibration import CalibrationController
from juicekeeper.engine.state import CHARGE_HYSTERESIS, TEMPERATURE_HYSTERESIS, EngineState
from juicekeeper.models.events import ConfigChange, EngineEvent, ReminderTick, SnapshotReceived
from juicekeeper.models.snapshot import Snapshot
from juicekeeper.power.assertion import SleepAssertion
from juicekeeper.scheduler.timers import Timers
from juicekeeper.sensors.reader import SensorReader

log = structlog.get_logger()

POLL_JOB = "poll"
REMINDER_JOB = "reminder"
ASSERTION_OWNER = "monitoring-engine"


class MonitoringEngine:
    """Poll the battery and drive alerts, reminders and the sleep assertion.

    Example:
        engine = MonitoringEngine(
            store=SettingsStore(settings.preferences()),
            reader=PsutilSensorReader(),
            notifier=NotificationDispatcher(),
            sleep_assertion=SleepAssertion(),
            timers=runner.timers(),
            wake_display=DisplayWaker().wake,
        )
        engine.start()
        ...
        engine.shutdown()
    """

    def __init__(
        self,
        store: SettingsStore,
        reader: SensorReader,
        notifier: Notifier,
        sleep_assertion: SleepAssertion,
        timers: Timers,
        wake_display: Optional[Callable[[], None]] = None,
        on_poll: Optional[Callable[[Optional[Snapshot]], None]] = None,
    ) -> None:
        """Initialize the engine. Nothing is polled until ``start()``.

        Args:
            store: Settings store; the engine subscribes to its changes
            reader: Battery sensor
            notifier: Receives the five alert kinds
            sleep_assertion: Shared idle-sleep resource
            timers: Timer backend for the poll and reminder jobs
            wake_display: Called to nudge the display awake on alerts
            on_poll: Called on the polling thread with each poll result
                (None when the sensor was unavailable)
        """
        self.store = store
        self.state = EngineState()
        self.calibration = CalibrationController(store)

        self._reader = reader
        self._notifier = notifier
        self._sleep = sleep_assertion
        self._timers = timers
        self._wake_display = wake_display
        self._on_poll = on_poll

        self._mailbox: Deque[EngineEvent] = deque()
        self._mailbox_lock = threading.Lock()
        self._evaluation_lock = threading.Lock()
        self._draining = False
        self._running = False
        self._stopped = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Lifecycle

    @property
    def running(self) -> bool:
        return self._running

    @property
    def effective_threshold(self) -> int:
        return self.calibration.effective_threshold()

    def start(self) -> None:
        """Subscribe to settings, poll once immediately, then poll on a timer."""
        if self._running or self._stopped:
            return
        self._running = True
        self._unsubscribe = self.store.subscribe(self._submit)
        log.info(
            "engine_started",
            alert_threshold=self.store.preferences.alert_threshold,
            polling_interval_seconds=self.store.preferences.polling_interval_seconds,
        )
        self.poll()
        self._schedule_poll()

    def shutdown(self) -> None:
        """Stop timers, drop pending work and release the sleep assertion.

        Events arriving afterwards (e.g. a sensor read that was in flight)
        are ignored.
        """
        with self._mailbox_lock:
            if self._stopped:
                return
            self._stopped = True
            self._running = False
            self._mailbox.clear()

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        with self._evaluation_lock:
            self._timers.cancel(POLL_JOB)
            self._timers.cancel(REMINDER_JOB)
            self._sleep.release()
        log.info("engine_stopped")

    # ------------------------------------------------------------------
    # Producers

    def poll(self) -> None:
        """Read the sensor on the calling thread and queue the result."""
        if self._stopped:
            return
        try:
            snapshot = self._reader.read()
        except Exception as e:
            log.warning("sensor_read_failed", error=str(e), error_type=type(e).__name__)
            snapshot = None

        self._submit(SnapshotReceived(snapshot))

        if self._on_poll is not None:
            try:
                self._on_poll(snapshot)
            except Exception as e:
                log.warning("poll_callback_failed", error=str(e))

    def begin_calibration(self) -> bool:
        """Charge to 100% once, then restore the configured threshold."""
        return self.calibration.begin()

    def cancel_calibration(self) -> Optional[int]:
        return self.calibration.cancel()

    def _on_reminder_timer(self) -> None:
        self._submit(ReminderTick())

    # ------------------------------------------------------------------
    # Mailbox

    def _submit(self, event: EngineEvent) -> None:
        with self._mailbox_lock:
            if self._stopped:
                log.debug("event_dropped", event_type=type(event).__name__)
                return
            self._mailbox.append(event)
            if self._draining:
                return
            self._draining = True

        while True:
            with self._mailbox_lock:
                if self._stopped or not self._mailbox:
                    self._mailbox.clear()
                    self._draining = False
                    return
                event = self._mailbox.popleft()

            with self._evaluation_lock:
                if self._stopped:
                    continue
                try:
                    self._process(event)
                except Exception:
                    log.exception("evaluation_failed", event_type=type(event).__name__)

    def _process(self, event: EngineEvent) -> None:
        if isinstance(event, SnapshotReceived):
            self._handle_snapshot(event.snapshot)
        elif isinstance(event, ReminderTick):
            self._handle_reminder_tick()
        elif isinstance(event, ConfigChange):
            self._handle_config_change(event)

    # ------------------------------------------------------------------
    # Evaluation

    def _handle_snapshot(self, snapshot: Optional[Snapshot]) -> None:
        if snapshot is None:
            log.debug("sensor_unavailable")
            return

        previous = self.state.last_percentage
        self.state.last_percentage = snapshot.percentage
        self.state.last_snapshot = snapshot

        log.debug(
            "battery_polled",
            percentage=snapshot.percentage,
            is_charging=snapshot.is_charging,
            temperature=snapshot.temperature_celsius,
        )

        if not self._complete_calibration(snapshot):
            self._evaluate_charge(previous, snapshot)
        self._evaluate_temperature(snapshot)
        self._refresh_reminders()
        self._arbitrate_sleep()

    def _complete_calibration(self, snapshot: Snapshot) -> bool:
        restored = self.calibration.complete_if_reached(snapshot.percentage)
        if restored is None:
            return False

        preferences = self.store.preferences
        self.state.charge_alert_fired = True
        self._sleep.disable(ASSERTION_OWNER)
        self._wake(preferences)
        self._notifier.notify_calibration_complete(
            snapshot.percentage, restored, preferences.sound_enabled
        )
        log.info(
            "calibration_complete",
            level=snapshot.percentage,
            restored_threshold=restored,
        )
        return True

    def _evaluate_charge(self, previous: Optional[int], snapshot: Snapshot) -> None:
        preferences = self.store.preferences
        threshold = self.calibration.effective_threshold(preferences)
        level = snapshot.percentage

        if self.state.charge_alert_fired:
            if level < threshold - CHARGE_HYSTERESIS:
                self.state.charge_alert_fired = False
                log.info("charge_alert_cleared", level=level, threshold=threshold)
            return

        if previous is None or not previous < threshold <= level:
            return

        self.state.charge_alert_fired = True
        self._sleep.disable(ASSERTION_OWNER)
        self._wake(preferences)
        self._notifier.notify_threshold_reached(level, threshold, preferences.sound_enabled)
        log.info("charge_alert_fired", previous=previous, level=level, threshold=threshold)

        if preferences.reminder_enabled and snapshot.is_charging:
            self.state.charge_reminder_active = True
            self._restart_reminder_timer(preferences)

    def _evaluate_temperature(self, snapshot: Snapshot) -> None:
        preferences = self.store.preferences

        if not preferences.temperature_alert_enabled:
            self._reset_temperature("disabled")
            return

        reading = snapshot.temperature
        if not reading.available:
            self._reset_temperature("reading_unavailable")
            return

        temperature = reading.value
        threshold = preferences.temperature_threshold_celsius

        if self.state.overheat_alert_fired:
            if temperature < threshold - TEMPERATURE_HYSTERESIS:
                self.state.overheat_alert_fired = False
                log.info(
                    "overheat_alert_cleared",
                    temperature=temperature,
                    threshold=threshold,
                )
            return

        if temperature < threshold:
            return

        self.state.overheat_alert_fired = True
        self._wake(preferences)
        self._notifier.notify_overheating(temperature, threshold, preferences.sound_enabled)
        log.info("overheat_alert_fired", temperature=temperature, threshold=threshold)

        if preferences.reminder_enabled:
            self.state.temp_reminder_active = True
            self._restart_reminder_timer(preferences)

    def _reset_temperature(self, reason: str) -> None:
        if self.state.overheat_alert_fired or self.state.temp_reminder_active:
            log.info("overheat_alert_reset", reason=reason)
        self.state.overheat_alert_fired = False
        self.state.temp_reminder_active = False

    # ------------------------------------------------------------------
    # Reminders

    def _charge_reminder_valid(self, preferences: Preferences) -> bool:
        snapshot = self.state.last_snapshot
        return (
            snapshot is not None
            and self.state.charge_alert_fired
            and snapshot.is_charging
            and snapshot.percentage >= self.calibration.effective_threshold(preferences)
            and preferences.reminder_enabled
            and not self.calibration.active
        )

    def _temperature_reminder_valid(self, preferences: Preferences) -> bool:
        snapshot = self.state.last_snapshot
        if snapshot is None or not snapshot.temperature.available:
            return False
        return (
            self.state.overheat_alert_fired
            and snapshot.temperature.value >= preferences.temperature_threshold_celsius
            and preferences.reminder_enabled
            and preferences.temperature_alert_enabled
        )

    def _refresh_reminders(self) -> None:
        """Clear reminder sub-states whose condition no longer holds."""
        preferences = self.store.preferences
        if self.state.charge_reminder_active and not self._charge_reminder_valid(preferences):
            self.state.charge_reminder_active = False
            log.info("charge_reminder_stopped")
        if self.state.temp_reminder_active and not self._temperature_reminder_valid(preferences):
            self.state.temp_reminder_active = False
            log.info("temperature_reminder_stopped")
        if not self.state.any_reminder_active:
            self._timers.cancel(REMINDER_JOB)

    def _handle_reminder_tick(self) -> None:
        preferences = self.store.preferences
        snapshot = self.state.last_snapshot

        if self.state.charge_reminder_active:
            if self._charge_reminder_valid(preferences):
                self._notifier.notify_threshold_reminder(
                    snapshot.percentage,
                    self.calibration.effective_threshold(preferences),
                    preferences.sound_enabled,
                )
                log.info("charge_reminder_sent", level=snapshot.percentage)
            else:
                self.state.charge_reminder_active = False
                log.info("charge_reminder_stopped")

        if self.state.temp_reminder_active:
            if self._temperature_reminder_valid(preferences):
                self._notifier.notify_temperature_reminder(
                    snapshot.temperature.value,
                    preferences.temperature_threshold_celsius,
                    preferences.sound_enabled,
                )
                log.info("temperature_reminder_sent", temperature=snapshot.temperature.value)
            else:
                self.state.temp_reminder_active = False
                log.info("temperature_reminder_stopped")

        if not self.state.any_reminder_active:
            self._timers.cancel(REMINDER_JOB)

    def _restart_reminder_timer(self, preferences: Preferences) -> None:
        self._timers.schedule(
            REMINDER_JOB,
            preferences.reminder_interval_minutes * 60,
            self._on_reminder_timer,
        )

    # ------------------------------------------------------------------
    # Settings

    def _handle_config_change(self, change: ConfigChange) -> None:
        preferences = self.store.preferences

        if change.field == "polling_interval_seconds":
            if self._running:
                self._schedule_poll()

        elif change.field == "alert_threshold":
            # The threshold restored by calibration keeps the completion latch
            if self.state.charge_alert_fired and not change.restored:
                self.state.charge_alert_fired = False
                log.info("charge_alert_rearmed", threshold=change.new)
            self._refresh_reminders()
            self._arbitrate_sleep()

        elif change.field == CALIBRATION_FIELD:
            self._refresh_reminders()
            self._arbitrate_sleep()

        elif change.field == "keep_awake_while_charging":
            self._arbitrate_sleep()

        elif change.field == "reminder_interval_minutes":
            if self.state.any_reminder_active and self._timers.is_scheduled(REMINDER_JOB):
                self._restart_reminder_timer(preferences)

        elif change.field == "temperature_alert_enabled":
            if not change.new:
                self._reset_temperature("disabled")
            self._refresh_reminders()

        elif change.field in ("reminder_enabled", "temperature_threshold_celsius"):
            self._refresh_reminders()

    def _schedule_poll(self) -> None:
        self._timers.schedule(
            POLL_JOB,
            self.store.preferences.polling_interval_seconds,
            self.poll,
        )

    # ------------------------------------------------------------------
    # Side effects

    def _arbitrate_sleep(self) -> None:
        """Hold the assertion iff keep-awake is on and we charge below the threshold."""
        snapshot = self.state.last_snapshot
        preferences = self.store.preferences
        should_hold = (
            snapshot is not None
            and preferences.keep_awake_while_charging
            and snapshot.is_charging
            and snapshot.percentage < self.calibration.effective_threshold(preferences)
        )
        if should_hold:
            self._sleep.enable(ASSERTION_OWNER)
        else:
            self._sleep.disable(ASSERTION_OWNER)

    def _wake(self, preferences: Preferences) -> None:
        if preferences.wake_display_on_alert and self._wake_display is not None:
            self._wake_display()
