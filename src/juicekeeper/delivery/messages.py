"""Notification texts."""

from dataclasses import dataclass

from juicekeeper.models.enums import AlertKind


@dataclass(frozen=True)
class Notification:
    """A rendered notification ready for a delivery channel."""

    kind: AlertKind
    title: str
    body: str
    sound: bool = True


def threshold_reached(level: int, threshold: int, sound: bool) -> Notification:
    return Notification(
        kind=AlertKind.THRESHOLD_REACHED,
        title="Battery threshold reached",
        body=(
            f"Battery reached {level}% (configured threshold: {threshold}%). "
            "Unplug the charger to preserve battery health."
        ),
        sound=sound,
    )


def threshold_reminder(level: int, threshold: int, sound: bool) -> Notification:
    return Notification(
        kind=AlertKind.THRESHOLD_REMINDER,
        title="Charger still connected",
        body=(
            f"Battery is at {level}% and still charging (threshold: {threshold}%). "
            "Unplug the charger to preserve battery health."
        ),
        sound=sound,
    )


def overheating(temperature: float, threshold: float, sound: bool) -> Notification:
    return Notification(
        kind=AlertKind.OVERHEATING,
        title="Battery overheating",
        body=(
            f"Battery temperature is {temperature:.1f} C (threshold: {threshold:.1f} C). "
            "Close heavy applications or let the machine cool down."
        ),
        sound=sound,
    )


def temperature_reminder(temperature: float, threshold: float, sound: bool) -> Notification:
    return Notification(
        kind=AlertKind.TEMPERATURE_REMINDER,
        title="Battery still hot",
        body=(
            f"Battery temperature is still {temperature:.1f} C "
            f"(threshold: {threshold:.1f} C)."
        ),
        sound=sound,
    )


def calibration_complete(level: int, restored_threshold: int, sound: bool) -> Notification:
    return Notification(
        kind=AlertKind.CALIBRATION_COMPLETE,
        title="Calibration charge complete",
        body=(
            f"Battery reached {level}%. Calibration mode is off and the alert "
            f"threshold is back at {restored_threshold}%."
        ),
        sound=sound,
    )
