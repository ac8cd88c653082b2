"""structlog setup for the monitor process."""

from __future__ import annotations

import logging
import sys
from typing import Dict, List, Literal

import structlog

# Third-party loggers and the most verbose level they may emit at
QUIET_LOGGERS: Dict[str, int] = {
    "apscheduler": logging.WARNING,
}


def resolve_level(log_level: str) -> int:
    """Numeric level for a name such as "debug" or "WARN"; unknown names mean INFO."""
    name = log_level.upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def build_processors(log_format: Literal["json", "text"]) -> List[structlog.typing.Processor]:
    """Processor chain ending in the renderer for ``log_format``."""
    chain: List[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]
    if log_format == "json":
        chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def configure_logging(
    log_format: Literal["json", "text"] = "text",
    log_level: str = "INFO",
) -> None:
    """Configure structlog, plus stdlib logging for APScheduler.

    Args:
        log_format: "json" for log shippers, "text" for a terminal.
        log_level: Minimum level name; WARN is accepted as WARNING.
    """
    level = resolve_level(log_level)

    structlog.configure(
        processors=build_processors(log_format),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(name)s: %(message)s", stream=sys.stdout, level=level)
    for name, loudest in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(level, loudest))


def get_logger() -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger instance."""
    return structlog.get_logger()
