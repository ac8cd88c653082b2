"""Calibration mode: charge to 100% once, then restore the configured threshold."""

from __future__ import annotations

from typing import Optional

import structlog

from juicekeeper.config.settings import Preferences
from juicekeeper.config.store import SettingsStore
from juicekeeper.engine.state import CALIBRATION_TARGET

log = structlog.get_logger()


class CalibrationController:
    """Temporarily overrides the effective charge threshold with 100%.

    The calibration flag and the remembered threshold live in the settings
    store, so every change reaches the engine as a regular config change.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    @property
    def active(self) -> bool:
        return self._store.calibration_active

    def effective_threshold(self, preferences: Optional[Preferences] = None) -> int:
        """The charge threshold after the calibration override is applied."""
        if self.active:
            return CALIBRATION_TARGET
        preferences = preferences or self._store.preferences
        return preferences.alert_threshold

    def begin(self) -> bool:
        """Start calibration. Returns False if it was already running."""
        return self._store.begin_calibration()

    def cancel(self) -> Optional[int]:
        """Abort calibration and restore the threshold without notifying."""
        restored = self._store.end_calibration()
        if restored is not None:
            log.info("calibration_cancelled", restored_threshold=restored)
        return restored

    def complete_if_reached(self, level: int) -> Optional[int]:
        """Finish calibration when the battery is full.

        Returns:
            The restored alert threshold if calibration completed on this
            reading, otherwise None.
        """
        if not self.active or level < CALIBRATION_TARGET:
            return None
        return self._store.end_calibration()
