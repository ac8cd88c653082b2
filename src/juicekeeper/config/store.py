"""Observable settings store holding the live preferences."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any, Callable, List, Optional

import structlog

from juicekeeper.config.persistence import PreferencesFile
from juicekeeper.config.settings import PREFERENCE_FIELDS, Preferences
from juicekeeper.models.events import ConfigChange

log = structlog.get_logger()

CALIBRATION_FIELD = "calibration_active"

ChangeCallback = Callable[[ConfigChange], None]


class SettingsStore:
    """Holds the current preferences and announces every change.

    All writes, including those made by the engine itself (restoring the
    threshold after calibration), go through ``update`` so the clamp rules of
    ``Preferences`` always apply. Subscribers receive one ``ConfigChange``
    per field whose value actually changed, in field declaration order.

    The calibration fields are transient: they are never persisted.
    """

    def __init__(
        self,
        preferences: Optional[Preferences] = None,
        persistence: Optional[PreferencesFile] = None,
    ) -> None:
        self._preferences = preferences or Preferences()
        self._persistence = persistence
        self._calibration_active = False
        self._pre_calibration_threshold: Optional[int] = None
        self._subscribers: List[ChangeCallback] = []
        self._lock = threading.RLock()

    @property
    def preferences(self) -> Preferences:
        with self._lock:
            return self._preferences

    @property
    def calibration_active(self) -> bool:
        with self._lock:
            return self._calibration_active

    @property
    def pre_calibration_threshold(self) -> Optional[int]:
        with self._lock:
            return self._pre_calibration_threshold

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a change callback.

        Returns:
            A function that removes the subscription again.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def update(self, **changes: Any) -> List[ConfigChange]:
        """Apply preference changes, clamping numeric values into range.

        Args:
            **changes: Preference names and their new values.

        Returns:
            The changes that were applied (empty if nothing changed).

        Raises:
            TypeError: If a name is not a known preference.
        """
        applied = self._apply(changes)
        self._publish(applied)
        return applied

    def begin_calibration(self) -> bool:
        """Enter calibration mode, remembering the current alert threshold.

        Returns:
            False if calibration was already active.
        """
        with self._lock:
            if self._calibration_active:
                return False
            self._pre_calibration_threshold = self._preferences.alert_threshold
            self._calibration_active = True

        log.info("calibration_started", saved_threshold=self._pre_calibration_threshold)
        self._publish([ConfigChange(CALIBRATION_FIELD, False, True)])
        return True

    def end_calibration(self) -> Optional[int]:
        """Leave calibration mode and restore the remembered alert threshold.

        Returns:
            The alert threshold in effect afterwards, or None if calibration
            was not active.
        """
        with self._lock:
            if not self._calibration_active:
                return None
            restore = self._pre_calibration_threshold
            self._pre_calibration_threshold = None
            self._calibration_active = False
            applied = [ConfigChange(CALIBRATION_FIELD, True, False)]
            if restore is not None:
                applied.extend(
                    replace(change, restored=True)
                    for change in self._apply({"alert_threshold": restore})
                )
            restored = self._preferences.alert_threshold

        log.info("calibration_ended", restored_threshold=restored)
        self._publish(applied)
        return restored

    def _apply(self, changes: dict) -> List[ConfigChange]:
        unknown = set(changes) - set(PREFERENCE_FIELDS)
        if unknown:
            raise TypeError(f"Unknown preference(s): {', '.join(sorted(unknown))}")

        with self._lock:
            old = self._preferences
            new = Preferences.model_validate({**old.model_dump(), **changes})
            applied = [
                ConfigChange(name, getattr(old, name), getattr(new, name))
                for name in PREFERENCE_FIELDS
                if getattr(old, name) != getattr(new, name)
            ]
            if not applied:
                return []
            self._preferences = new

        self._save(new)
        return applied

    def _save(self, preferences: Preferences) -> None:
        if self._persistence is None:
            return
        try:
            self._persistence.write(preferences)
        except OSError as e:
            log.warning(
                "preferences_save_failed",
                path=str(self._persistence.path),
                error=str(e),
            )

    def _publish(self, changes: List[ConfigChange]) -> None:
        if not changes:
            return
        with self._lock:
            subscribers = list(self._subscribers)
        for change in changes:
            log.debug("setting_changed", field=change.field, old=change.old, new=change.new)
            for callback in subscribers:
                try:
                    callback(change)
                except Exception as e:
                    log.error(
                        "setting_subscriber_failed",
                        field=change.field,
                        error=str(e),
                    )
