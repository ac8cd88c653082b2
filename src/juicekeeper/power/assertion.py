"""Idle-sleep prevention assertion.

A single system-wide "prevent idle sleep" assertion is modelled as an
injected ``SleepAssertion`` object. The platform specifics live in a backend:

- macOS: ``caffeinate -i`` bound to our PID (prevents idle system sleep but
  still lets the display sleep)
- Linux: ``systemd-inhibit --what=idle`` holding a sleeping child process
- elsewhere: a no-op backend

Backend failures are logged and the assertion is treated as not held; they
are never retried until the next arbitration asks for it again.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Protocol

import structlog

log = structlog.get_logger()

ASSERTION_REASON = "JuiceKeeper - keep awake while charging until the battery threshold is reached"
# Seconds a helper gets to exit after SIGTERM before it is killed
TERMINATE_TIMEOUT = 0.5


class SleepAssertionError(Exception):
    """Raised by a backend when the assertion cannot be created or released."""

    pass


class AssertionBackend(Protocol):
    def acquire(self) -> None:
        ...

    def release(self) -> None:
        ...


class SubprocessBackend(ABC):
    """Hold the assertion for as long as a helper process is alive."""

    name = "subprocess"

    def __init__(self, terminate_timeout: float = TERMINATE_TIMEOUT) -> None:
        self.terminate_timeout = terminate_timeout
        self._process: Optional[subprocess.Popen] = None

    @abstractmethod
    def command(self) -> List[str]:
        """Command line of the helper process that holds the assertion."""

    def acquire(self) -> None:
        if self._process is not None and self._process.poll() is None:
            return
        try:
            self._process = subprocess.Popen(
                self.command(),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise SleepAssertionError(f"{self.name}: {e}") from e

        # The helper exits immediately when it is refused (e.g. no logind)
        try:
            code = self._process.wait(timeout=0.2)
        except subprocess.TimeoutExpired:
            return
        self._process = None
        raise SleepAssertionError(f"{self.name} exited with status {code}")

    def release(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        try:
            process.terminate()
            process.wait(timeout=self.terminate_timeout)
        except ProcessLookupError:
            pass  # Process already exited
        except subprocess.TimeoutExpired:
            process.kill()
        except OSError as e:
            raise SleepAssertionError(f"{self.name}: {e}") from e


class CaffeinateBackend(SubprocessBackend):
    name = "caffeinate"

    def command(self) -> List[str]:
        # -w makes caffeinate exit together with us if we die without cleanup
        return ["caffeinate", "-i", "-w", str(os.getpid())]


class SystemdInhibitBackend(SubprocessBackend):
    name = "systemd-inhibit"

    def command(self) -> List[str]:
        return [
            "systemd-inhibit",
            "--what=idle",
            "--who=JuiceKeeper",
            f"--why={ASSERTION_REASON}",
            "--mode=block",
            "sleep",
            "infinity",
        ]


class NullBackend:
    """Backend for platforms without a supported assertion mechanism."""

    name = "none"

    def acquire(self) -> None:
        log.debug("sleep_assertion_unsupported", platform=sys.platform)

    def release(self) -> None:
        pass


def platform_backend() -> AssertionBackend:
    """Pick the assertion backend for the running platform."""
    if sys.platform == "darwin" and shutil.which("caffeinate"):
        return CaffeinateBackend()
    if sys.platform.startswith("linux") and shutil.which("systemd-inhibit"):
        return SystemdInhibitBackend()
    return NullBackend()


class SleepAssertion:
    """Exclusive "prevent idle sleep" resource with an ownership token.

    At most one assertion is outstanding. ``enable`` is a no-op while held,
    ``disable`` is a no-op unless the caller is the holder, and ``release``
    drops the assertion whoever holds it.
    """

    def __init__(self, backend: Optional[AssertionBackend] = None) -> None:
        self._backend = backend if backend is not None else platform_backend()
        self._held_by: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def held_by(self) -> Optional[str]:
        return self._held_by

    @property
    def is_held(self) -> bool:
        return self._held_by is not None

    def enable(self, owner: str) -> bool:
        """Hold the assertion for ``owner``.

        Returns:
            True if the assertion is held by ``owner`` afterwards.
        """
        with self._lock:
            if self._held_by is not None:
                return self._held_by == owner
            try:
                self._backend.acquire()
            except SleepAssertionError as e:
                log.warning("sleep_assertion_failed", action="enable", error=str(e))
                return False
            self._held_by = owner
        log.info("sleep_assertion_enabled", owner=owner)
        return True

    def disable(self, owner: str) -> None:
        """Release the assertion if ``owner`` holds it."""
        with self._lock:
            if self._held_by is None or self._held_by != owner:
                return
            self._release_locked()
        log.info("sleep_assertion_disabled", owner=owner)

    def release(self) -> None:
        """Release the assertion regardless of the holder."""
        with self._lock:
            if self._held_by is None:
                return
            owner = self._held_by
            self._release_locked()
        log.info("sleep_assertion_released", owner=owner)

    def _release_locked(self) -> None:
        try:
            self._backend.release()
        except SleepAssertionError as e:
            log.warning("sleep_assertion_failed", action="disable", error=str(e))
        finally:
            self._held_by = None
