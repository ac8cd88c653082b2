"""Desktop notification delivery via the platform notification helper."""

from __future__ import annotations

import shutil
import subprocess
import sys
from typing import List, Optional

import structlog

from juicekeeper.delivery.messages import Notification

log = structlog.get_logger()


class DeliveryError(Exception):
    """Raised when a channel fails to deliver a notification."""

    pass


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


class DesktopChannel:
    """Show notifications with ``osascript`` (macOS) or ``notify-send`` (Linux)."""

    name = "desktop"

    def __init__(self, platform: Optional[str] = None, timeout: float = 10.0) -> None:
        """Initialize desktop delivery.

        Args:
            platform: Value of ``sys.platform`` to target (defaults to the
                running platform)
            timeout: Seconds to wait for the helper command
        """
        self.platform = platform or sys.platform
        self.timeout = timeout

    def build_command(self, notification: Notification) -> List[str]:
        """Build the helper command line for a notification.

        Raises:
            DeliveryError: If the platform has no supported helper
        """
        if self.platform == "darwin":
            script = (
                f"display notification {_applescript_quote(notification.body)} "
                f"with title {_applescript_quote(notification.title)}"
            )
            if notification.sound:
                script += ' sound name "default"'
            return ["/usr/bin/osascript", "-e", script]

        if self.platform.startswith("linux"):
            if not shutil.which("notify-send"):
                raise DeliveryError("notify-send is not installed")
            command = ["notify-send", "--app-name=JuiceKeeper"]
            if notification.kind.value.endswith("reminder"):
                command.append("--urgency=normal")
            else:
                command.append("--urgency=critical")
            return command + [notification.title, notification.body]

        raise DeliveryError(f"Desktop notifications are not supported on {self.platform}")

    def send(self, notification: Notification) -> None:
        """Show a notification.

        Raises:
            DeliveryError: If the helper is missing, fails or times out
        """
        command = self.build_command(notification)
        try:
            subprocess.run(
                command,
                check=True,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise DeliveryError(f"{command[0]} failed: {e}") from e
        log.debug("desktop_notification_sent", kind=notification.kind.value)
