"""Display wake nudge."""

from __future__ import annotations

import shutil
import subprocess
import sys
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional

import structlog

log = structlog.get_logger()


def wake_command() -> Optional[List[str]]:
    """Command that simulates user activity on this platform, if any."""
    if sys.platform == "darwin" and shutil.which("caffeinate"):
        # -u declares user activity, which turns the display on
        return ["caffeinate", "-u", "-t", "1"]
    if sys.platform.startswith("linux") and shutil.which("xset"):
        return ["xset", "dpms", "force", "on"]
    return None


class DisplayWaker:
    """Wake the display if it went to sleep.

    ``wake()`` returns immediately; the helper command runs on a worker
    thread. Calling it while the display is on is harmless.
    """

    def __init__(
        self,
        command: Optional[List[str]] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        timeout: float = 5.0,
    ) -> None:
        self.command = command if command is not None else wake_command()
        self.timeout = timeout
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="display-wake"
        )

    def wake(self) -> None:
        if not self.command:
            log.debug("display_wake_unsupported", platform=sys.platform)
            return
        future = self._executor.submit(
            subprocess.run,
            self.command,
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=self.timeout,
        )
        future.add_done_callback(self._log_failure)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    @staticmethod
    def _log_failure(future: Future) -> None:
        error = future.exception()
        if error is not None:
            log.warning("display_wake_failed", error=str(error))
