"""Tests for the settings store and preference persistence."""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from juicekeeper.config import (
    CALIBRATION_FIELD,
    Preferences,
    PreferencesFile,
    SettingsStore,
)
from juicekeeper.models import ConfigChange


class TestSettingsStore:
    """Observable preference updates."""

    def test_update_publishes_changes(self) -> None:
        """Subscribers get one change per changed field."""
        store = SettingsStore()
        changes = []
        store.subscribe(changes.append)

        applied = store.update(alert_threshold=85, sound_enabled=False)

        assert applied == changes
        assert changes == [
            ConfigChange("alert_threshold", 80, 85),
            ConfigChange("sound_enabled", True, False),
        ]
        assert store.preferences.alert_threshold == 85

    def test_unchanged_values_not_published(self) -> None:
        """Writing the current value is silent."""
        store = SettingsStore()
        callback = MagicMock()
        store.subscribe(callback)

        assert store.update(alert_threshold=80) == []
        callback.assert_not_called()

    def test_update_clamps(self) -> None:
        """Values are clamped before they are stored and published."""
        store = SettingsStore()

        applied = store.update(alert_threshold=500)

        assert applied == [ConfigChange("alert_threshold", 80, 100)]

    def test_unknown_field_rejected(self) -> None:
        """Unknown names raise TypeError and change nothing."""
        store = SettingsStore()

        with pytest.raises(TypeError, match="volume"):
            store.update(volume=11)

    def test_unsubscribe(self) -> None:
        """An unsubscribed callback is not called."""
        store = SettingsStore()
        callback = MagicMock()
        unsubscribe = store.subscribe(callback)

        unsubscribe()
        store.update(alert_threshold=70)

        callback.assert_not_called()

    def test_failing_subscriber_does_not_block_others(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """One broken subscriber is logged, the others still run."""
        store = SettingsStore()
        store.subscribe(MagicMock(side_effect=RuntimeError("bad")))
        good = MagicMock()
        store.subscribe(good)

        store.update(alert_threshold=70)

        good.assert_called_once()
        assert "setting_subscriber_failed" in capsys.readouterr().out

    def test_calibration_round_trip(self) -> None:
        """begin/end publish the flag and restore the threshold."""
        store = SettingsStore(Preferences(alert_threshold=75))
        changes = []
        store.subscribe(changes.append)

        assert store.begin_calibration() is True
        assert store.calibration_active is True
        assert store.pre_calibration_threshold == 75

        store.update(alert_threshold=60)
        assert store.end_calibration() == 75

        assert changes == [
            ConfigChange(CALIBRATION_FIELD, False, True),
            ConfigChange("alert_threshold", 75, 60),
            ConfigChange(CALIBRATION_FIELD, True, False),
            ConfigChange("alert_threshold", 60, 75, restored=True),
        ]
        assert store.calibration_active is False
        assert store.pre_calibration_threshold is None

    def test_end_calibration_when_inactive(self) -> None:
        """Ending without calibration does nothing."""
        store = SettingsStore()

        assert store.end_calibration() is None

    def test_changes_are_saved(self, tmp_path: Path) -> None:
        """Every applied change is written to the preferences file."""
        persistence = PreferencesFile(str(tmp_path / "prefs.json"))
        store = SettingsStore(persistence=persistence)

        store.update(reminder_enabled=True)

        assert persistence.read()["reminder_enabled"] is True

    def test_calibration_not_saved(self, tmp_path: Path) -> None:
        """The calibration flag is transient."""
        persistence = PreferencesFile(str(tmp_path / "prefs.json"))
        store = SettingsStore(persistence=persistence)

        store.begin_calibration()

        assert not persistence.path.exists()

    def test_save_failure_keeps_change(self, capsys: pytest.CaptureFixture[str]) -> None:
        """A write error is logged; the new value still applies."""
        persistence = MagicMock()
        persistence.write.side_effect = OSError("disk full")
        store = SettingsStore(persistence=persistence)

        store.update(alert_threshold=70)

        assert store.preferences.alert_threshold == 70
        assert "preferences_save_failed" in capsys.readouterr().out


class TestPreferencesFile:
    """Atomic JSON persistence."""

    def test_read_missing_file(self, tmp_path: Path) -> None:
        """First run: nothing saved yet."""
        assert PreferencesFile(str(tmp_path / "prefs.json")).read() == {}

    def test_write_then_read(self, tmp_path: Path) -> None:
        """Written preferences are read back."""
        prefs_file = PreferencesFile(str(tmp_path / "prefs.json"))

        prefs_file.write(Preferences(alert_threshold=90, keep_awake_while_charging=True))
        values = prefs_file.read()

        assert values["alert_threshold"] == 90
        assert values["keep_awake_while_charging"] is True

    def test_document_has_schema_version(self, tmp_path: Path) -> None:
        """The file carries a schema version next to the values."""
        path = tmp_path / "prefs.json"
        PreferencesFile(str(path)).write(Preferences())

        document = json.loads(path.read_text())

        assert document["schema_version"] == "1.0"
        assert document["preferences"]["alert_threshold"] == 80

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """Missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "prefs.json"

        PreferencesFile(str(path)).write(Preferences())

        assert path.exists()

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        """The temp file is renamed into place."""
        PreferencesFile(str(tmp_path / "prefs.json")).write(Preferences())

        assert [p.name for p in tmp_path.iterdir()] == ["prefs.json"]

    def test_corrupted_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Unparseable JSON reads as empty and logs a warning."""
        path = tmp_path / "prefs.json"
        path.write_text("{not json")

        assert PreferencesFile(str(path)).read() == {}
        assert "preferences_file_corrupted" in capsys.readouterr().out

    def test_missing_preferences_field(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A document without a preferences object reads as empty."""
        path = tmp_path / "prefs.json"
        path.write_text(json.dumps({"schema_version": "1.0"}))

        assert PreferencesFile(str(path)).read() == {}
        assert "preferences_file_missing_field" in capsys.readouterr().out

    def test_unknown_keys_dropped(self, tmp_path: Path) -> None:
        """Keys that are not preferences are ignored."""
        path = tmp_path / "prefs.json"
        path.write_text(
            json.dumps({"preferences": {"alert_threshold": 70, "calibration_active": True}})
        )

        assert PreferencesFile(str(path)).read() == {"alert_threshold": 70}
