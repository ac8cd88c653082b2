"""Blocking service runner using APScheduler."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import structlog
from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from juicekeeper.scheduler.timers import SchedulerTimers

log = structlog.get_logger()


class SchedulerError(Exception):
    """Raised when the runner is used incorrectly."""

    pass


class Service(Protocol):
    def start(self) -> None:
        ...

    def shutdown(self) -> None:
        ...


class ScheduledRunner:
    """Runs a service whose timers live on a blocking APScheduler instance.

    Usage:
        runner = ScheduledRunner()
        engine = MonitoringEngine(..., timers=runner.timers())
        runner.run(engine)   # blocks until shutdown() or Ctrl-C
    """

    def __init__(
        self,
        timezone: str = "UTC",
        misfire_grace_time: int = 30,
    ) -> None:
        """Initialize runner.

        Args:
            timezone: IANA timezone for the scheduler
            misfire_grace_time: Seconds after the scheduled time a late run still executes
        """
        self.timezone = timezone
        self.misfire_grace_time = misfire_grace_time
        self._scheduler: Optional[BlockingScheduler] = None

    def _create_scheduler(self) -> BlockingScheduler:
        job_defaults = {
            "coalesce": True,  # Combine missed runs into one
            "misfire_grace_time": self.misfire_grace_time,
            "max_instances": 1,  # A slow poll never overlaps the next one
        }
        return BlockingScheduler(
            timezone=self.timezone,
            job_defaults=job_defaults,
        )

    @property
    def scheduler(self) -> BlockingScheduler:
        if self._scheduler is None:
            self._scheduler = self._create_scheduler()
        return self._scheduler

    def timers(self) -> SchedulerTimers:
        """Timers that schedule jobs on this runner's scheduler."""
        return SchedulerTimers(self.scheduler)

    def run(self, service: Service) -> None:
        """Start the service and block until the scheduler stops.

        The service is always shut down when this returns.

        Raises:
            SchedulerError: If the scheduler is already running
        """
        scheduler = self.scheduler
        if scheduler.running:
            raise SchedulerError("Scheduler is already running")

        def on_job_error(event: Any) -> None:
            log.error("job_failed", job_id=event.job_id, error=str(event.exception))

        scheduler.add_listener(on_job_error, EVENT_JOB_ERROR)

        service.start()
        log.info("scheduler_starting", timezone=self.timezone)
        try:
            scheduler.start()
        except KeyboardInterrupt:
            log.info("scheduler_shutdown", reason="keyboard interrupt")
        finally:
            service.shutdown()

    def shutdown(self) -> None:
        """Stop the scheduler; ``run`` then returns."""
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            log.info("scheduler_shutdown", reason="explicit shutdown")
