"""Timer abstraction used by the monitoring engine.

The engine only needs repeating, replaceable, cancellable timers. Production
code backs them with APScheduler interval jobs; tests use a virtual clock.
"""

from typing import Callable, Protocol

import structlog
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.interval import IntervalTrigger

log = structlog.get_logger()


class Timers(Protocol):
    def schedule(self, job_id: str, interval_seconds: float, func: Callable[[], None]) -> None:
        """Run ``func`` every ``interval_seconds``, replacing any job with the same id.

        The first run happens one interval from now.
        """
        ...

    def cancel(self, job_id: str) -> None:
        """Stop the job if it exists."""
        ...

    def is_scheduled(self, job_id: str) -> bool:
        ...


class SchedulerTimers:
    """``Timers`` backed by an APScheduler scheduler."""

    def __init__(self, scheduler: BaseScheduler) -> None:
        self._scheduler = scheduler

    def schedule(self, job_id: str, interval_seconds: float, func: Callable[[], None]) -> None:
        self._scheduler.add_job(
            func,
            IntervalTrigger(seconds=interval_seconds),
            id=job_id,
            replace_existing=True,
        )
        log.debug("timer_scheduled", job_id=job_id, interval_seconds=interval_seconds)

    def cancel(self, job_id: str) -> None:
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            return
        log.debug("timer_cancelled", job_id=job_id)

    def is_scheduled(self, job_id: str) -> bool:
        return self._scheduler.get_job(job_id) is not None
