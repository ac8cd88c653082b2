"""File-based health status for process supervisors.

The monitor writes a small JSON document after every poll so a supervisor
(systemd, launchd wrapper script, container HEALTHCHECK) can tell whether it
is alive and whether the battery sensor is answering.

Example check:
    python -c "import json; h=json.load(open('/tmp/juicekeeper-health')); exit(h['status'] != 'healthy')"

Example usage:
    from juicekeeper.health import update_health_status, HealthStatus

    update_health_status(HealthStatus.STARTING)
    update_health_status(HealthStatus.HEALTHY, {"percentage": 76})
    update_health_status(HealthStatus.DEGRADED, {"reason": "sensor unavailable"})
    clear_health_status()
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

log = structlog.get_logger()

HEALTH_FILE = Path("/tmp/juicekeeper-health")


class HealthStatus(Enum):
    """Health status values for the monitor.

    Values:
        STARTING: Monitor is initializing
        HEALTHY: Last poll returned a battery reading
        DEGRADED: Monitor runs but the sensor is not answering
        UNHEALTHY: Monitor hit an error it cannot recover from
    """

    STARTING = "starting"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def update_health_status(
    status: HealthStatus,
    details: Optional[Dict[str, Any]] = None,
    path: Optional[Path] = None,
) -> None:
    """Write health status to file.

    Args:
        status: Current health status.
        details: Optional dictionary with additional status information.
        path: File to write (defaults to ``HEALTH_FILE``).
    """
    target = path or HEALTH_FILE
    health_data = {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": details or {},
    }
    try:
        target.write_text(json.dumps(health_data))
    except OSError as e:
        log.warning("health_write_failed", path=str(target), error=str(e))


def get_health_status(path: Optional[Path] = None) -> Optional[Dict[str, Any]]:
    """Read current health status from file.

    Returns:
        Dictionary with health status data, or None if the file doesn't exist
        or can't be parsed.
    """
    target = path or HEALTH_FILE
    if not target.exists():
        return None
    try:
        return json.loads(target.read_text())
    except (json.JSONDecodeError, OSError):
        return None


def clear_health_status(path: Optional[Path] = None) -> None:
    """Remove health file on shutdown."""
    (path or HEALTH_FILE).unlink(missing_ok=True)
