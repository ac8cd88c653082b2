"""Delivery subsystem for user notifications."""

from juicekeeper.delivery.desktop import DeliveryError, DesktopChannel
from juicekeeper.delivery.manager import LogChannel, NotificationDispatcher, Notifier
from juicekeeper.delivery.messages import Notification

__all__ = [
    "DeliveryError",
    "DesktopChannel",
    "LogChannel",
    "Notification",
    "NotificationDispatcher",
    "Notifier",
]
