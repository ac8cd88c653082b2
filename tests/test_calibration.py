"""Tests for calibration mode."""

from juicekeeper.config import CALIBRATION_FIELD, SettingsStore
from juicekeeper.engine import CALIBRATION_TARGET, CalibrationController


class TestCalibrationController:
    """Effective threshold and completion without an engine."""

    def test_effective_threshold_is_100_while_active(self) -> None:
        """Calibration overrides the configured threshold."""
        store = SettingsStore()
        controller = CalibrationController(store)

        assert controller.effective_threshold() == 80
        controller.begin()
        assert controller.effective_threshold() == CALIBRATION_TARGET

    def test_begin_twice_returns_false(self) -> None:
        """A second begin is ignored and keeps the saved threshold."""
        store = SettingsStore()
        controller = CalibrationController(store)

        assert controller.begin() is True
        assert controller.begin() is False
        assert store.pre_calibration_threshold == 80

    def test_complete_below_target_does_nothing(self) -> None:
        """99% does not complete calibration."""
        controller = CalibrationController(SettingsStore())
        controller.begin()

        assert controller.complete_if_reached(99) is None
        assert controller.active is True

    def test_complete_at_target_restores(self) -> None:
        """100% ends calibration and reports the restored threshold."""
        controller = CalibrationController(SettingsStore())
        controller.begin()

        assert controller.complete_if_reached(100) == 80
        assert controller.active is False

    def test_complete_when_inactive(self) -> None:
        """Nothing to complete outside calibration."""
        controller = CalibrationController(SettingsStore())

        assert controller.complete_if_reached(100) is None

    def test_cancel_restores_without_notification(self) -> None:
        """Cancelling restores the threshold and publishes the flag change."""
        store = SettingsStore()
        changes = []
        store.subscribe(changes.append)
        controller = CalibrationController(store)
        controller.begin()

        assert controller.cancel() == 80
        assert [c.field for c in changes] == [CALIBRATION_FIELD, CALIBRATION_FIELD]
        assert changes[-1].new is False

    def test_cancel_when_inactive(self) -> None:
        """Cancelling without calibration returns None."""
        assert CalibrationController(SettingsStore()).cancel() is None


class TestCalibrationInEngine:
    """Calibration through the monitoring engine."""

    def test_completion_notifies_once(self, make_engine) -> None:
        """Reaching 100% sends one completion and no threshold alert."""
        harness = make_engine(alert_threshold=80)
        harness.engine.begin_calibration()

        harness.feed(98, 99, 100, 100)

        assert harness.notifier.calls == [("calibration_complete", 100, 80, True)]
        assert harness.store.calibration_active is False
        assert harness.store.preferences.alert_threshold == 80
        assert harness.engine.effective_threshold == 80

    def test_no_threshold_alert_while_calibrating(self, make_engine) -> None:
        """Crossing the configured threshold is ignored during calibration."""
        harness = make_engine(alert_threshold=80)
        harness.engine.begin_calibration()

        harness.feed(79, 80, 85)

        assert harness.notifier.calls == []
        assert harness.engine.effective_threshold == CALIBRATION_TARGET

    def test_completion_latches_charge_alert(self, make_engine) -> None:
        """After completion the charge alert stays quiet until re-armed."""
        harness = make_engine(alert_threshold=80)
        harness.engine.begin_calibration()
        harness.feed(99, 100)

        harness.feed(100, 99, 96)

        assert harness.state.charge_alert_fired is True
        assert harness.notifier.kinds() == ["calibration_complete"]

    def test_completion_wakes_display(self, make_engine) -> None:
        """Completion nudges the display like any alert."""
        harness = make_engine()
        harness.engine.begin_calibration()

        harness.feed(99, 100)

        assert len(harness.wakes) == 1

    def test_completion_on_first_reading(self, make_engine) -> None:
        """A battery already at 100% completes calibration immediately."""
        harness = make_engine()
        harness.engine.begin_calibration()

        harness.feed(100)

        assert harness.notifier.kinds() == ["calibration_complete"]

    def test_threshold_changed_during_calibration_is_overwritten(self, make_engine) -> None:
        """Completion restores the threshold saved when calibration began."""
        harness = make_engine(alert_threshold=80)
        harness.engine.begin_calibration()
        harness.store.update(alert_threshold=70)

        harness.feed(99, 100)

        assert harness.store.preferences.alert_threshold == 80
        assert harness.notifier.calls == [("calibration_complete", 100, 80, True)]

    def test_restored_threshold_keeps_completion_latch(self, make_engine) -> None:
        """Restoring an edited threshold does not re-arm the charge alert."""
        harness = make_engine(alert_threshold=80)
        harness.engine.begin_calibration()
        harness.store.update(alert_threshold=70)

        harness.feed(99, 100)

        assert harness.engine.state.charge_alert_fired is True

        harness.feed(78, 80)

        assert harness.notifier.kinds() == ["calibration_complete"]

    def test_cancel_restores_threshold(self, make_engine) -> None:
        """Cancelling mid-charge goes back to the configured threshold."""
        harness = make_engine(alert_threshold=80)
        harness.engine.begin_calibration()
        harness.feed(70, 75)

        assert harness.engine.cancel_calibration() == 80

        harness.feed(80)
        assert harness.notifier.kinds() == ["threshold_reached"]

    def test_begin_after_alert_allows_full_charge(self, make_engine) -> None:
        """Starting calibration after the threshold alert still reaches 100%."""
        harness = make_engine(alert_threshold=80)
        harness.feed(79, 80)

        harness.engine.begin_calibration()
        harness.feed(85, 94, 100)

        assert harness.notifier.kinds() == ["threshold_reached", "calibration_complete"]

    def test_no_charge_reminder_while_calibrating(self, make_engine) -> None:
        """Calibration ends an active charge reminder."""
        harness = make_engine(alert_threshold=80, reminder_enabled=True)
        harness.feed(79, 80)
        assert harness.state.charge_reminder_active is True

        harness.engine.begin_calibration()

        assert harness.state.charge_reminder_active is False
