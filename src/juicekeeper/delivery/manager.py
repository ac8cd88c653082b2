"""Notification dispatch orchestration."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Protocol

import structlog

from juicekeeper.delivery import messages
from juicekeeper.delivery.desktop import DeliveryError, DesktopChannel
from juicekeeper.delivery.messages import Notification

log = structlog.get_logger()


class Notifier(Protocol):
    """The five alert operations the monitoring engine fires."""

    def notify_threshold_reached(self, level: int, threshold: int, sound: bool) -> None:
        ...

    def notify_overheating(self, temperature: float, threshold: float, sound: bool) -> None:
        ...

    def notify_threshold_reminder(self, level: int, threshold: int, sound: bool) -> None:
        ...

    def notify_temperature_reminder(
        self, temperature: float, threshold: float, sound: bool
    ) -> None:
        ...

    def notify_calibration_complete(
        self, level: int, restored_threshold: int, sound: bool
    ) -> None:
        ...


class Channel(Protocol):
    name: str

    def send(self, notification: Notification) -> None:
        ...


class LogChannel:
    """Write notifications to the structured log. Never fails."""

    name = "log"

    def send(self, notification: Notification) -> None:
        log.warning(
            "notification",
            kind=notification.kind.value,
            title=notification.title,
            body=notification.body,
        )


class NotificationDispatcher:
    """Fire-and-forget notification delivery.

    Notifications are rendered on the caller's thread and delivered on a
    single worker thread, so callers never wait for the desktop helper.
    If the primary channel fails the notification goes to the fallback
    channel instead. Failures are logged and never reach the caller.
    """

    def __init__(
        self,
        channel: Optional[Channel] = None,
        fallback: Optional[Channel] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        """Initialize dispatcher.

        Args:
            channel: Primary delivery channel (desktop notifications by default)
            fallback: Channel used when the primary fails (log by default)
            executor: Executor for delivery work (one worker thread by default)
        """
        self.channel = channel if channel is not None else DesktopChannel()
        self.fallback = fallback if fallback is not None else LogChannel()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="notify"
        )

    def notify_threshold_reached(self, level: int, threshold: int, sound: bool) -> None:
        self.dispatch(messages.threshold_reached(level, threshold, sound))

    def notify_overheating(self, temperature: float, threshold: float, sound: bool) -> None:
        self.dispatch(messages.overheating(temperature, threshold, sound))

    def notify_threshold_reminder(self, level: int, threshold: int, sound: bool) -> None:
        self.dispatch(messages.threshold_reminder(level, threshold, sound))

    def notify_temperature_reminder(
        self, temperature: float, threshold: float, sound: bool
    ) -> None:
        self.dispatch(messages.temperature_reminder(temperature, threshold, sound))

    def notify_calibration_complete(
        self, level: int, restored_threshold: int, sound: bool
    ) -> None:
        self.dispatch(messages.calibration_complete(level, restored_threshold, sound))

    def dispatch(self, notification: Notification) -> None:
        """Queue a notification for delivery and return immediately."""
        try:
            self._executor.submit(self.deliver, notification)
        except RuntimeError:
            # Executor already shut down
            log.debug("notification_dropped", kind=notification.kind.value)

    def deliver(self, notification: Notification) -> bool:
        """Deliver synchronously via the channel, falling back on failure.

        Returns:
            True if the primary channel delivered the notification.
        """
        try:
            self.channel.send(notification)
            log.info(
                "notification_delivered",
                kind=notification.kind.value,
                channel=self.channel.name,
            )
            return True
        except DeliveryError as e:
            log.error(
                "notification_delivery_failed",
                kind=notification.kind.value,
                channel=self.channel.name,
                error=str(e),
            )

        try:
            self.fallback.send(notification)
        except DeliveryError as e:
            log.error(
                "notification_fallback_failed",
                kind=notification.kind.value,
                channel=self.fallback.name,
                error=str(e),
            )
        return False

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
