"""Scheduling: timer abstraction and the blocking service runner."""

from juicekeeper.scheduler.runner import ScheduledRunner, SchedulerError
from juicekeeper.scheduler.timers import SchedulerTimers, Timers

__all__ = [
    "ScheduledRunner",
    "SchedulerError",
    "SchedulerTimers",
    "Timers",
]
