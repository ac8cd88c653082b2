"""
Entry point for the juicekeeper CLI.

Usage:
    juicekeeper               Run the battery monitor until interrupted
    juicekeeper --calibrate   Run with calibration mode on (charge to 100% once)
    juicekeeper --status      Print the current battery status and exit
    juicekeeper --test        Validate configuration and sensor access, then exit
    juicekeeper --version     Show version and exit

Exit Codes:
    0 - Success
    1 - Configuration error (invalid settings, unreadable config file)
    2 - Sensor unavailable (no battery found)
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from types import FrameType
    from juicekeeper.config import MonitorSettings, SettingsStore
    from juicekeeper.scheduler import ScheduledRunner

from juicekeeper import __version__

# Module-level handles for signal handlers
_store: Optional["SettingsStore"] = None
_runner: Optional["ScheduledRunner"] = None

# Exit codes
EXIT_SUCCESS = 0
EXIT_CONFIG_ERROR = 1
EXIT_SENSOR_UNAVAILABLE = 2


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="juicekeeper",
        description="Battery charge and temperature monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   Success
  1   Configuration error
  2   Sensor unavailable (no battery found)

Environment Variables:
  CONFIG_PATH                                 Path to YAML configuration file
  JUICEKEEPER_ALERT_THRESHOLD                 Charge alert threshold in percent (1-100)
  JUICEKEEPER_POLLING_INTERVAL_SECONDS        Poll interval in seconds (1-600)
  JUICEKEEPER_TEMPERATURE_THRESHOLD_CELSIUS   Overheating threshold (30-50)
  JUICEKEEPER_REMINDER_INTERVAL_MINUTES       Minutes between reminders (1-60)
  JUICEKEEPER_KEEP_AWAKE_WHILE_CHARGING       Prevent idle sleep while charging
  JUICEKEEPER_PREFERENCES_PATH                JSON file for saved preferences
  JUICEKEEPER_LOG_LEVEL                       Logging level: DEBUG, INFO, WARNING, ERROR
  JUICEKEEPER_LOG_FORMAT                      Log format: json or text

Examples:
  # Alert at 85% and keep the machine awake while charging
  JUICEKEEPER_ALERT_THRESHOLD=85 JUICEKEEPER_KEEP_AWAKE_WHILE_CHARGING=true juicekeeper

  # Calibration charge
  juicekeeper --calibrate
""",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--status",
        action="store_true",
        help="Print the current battery status and exit",
    )
    mode.add_argument(
        "--test",
        action="store_true",
        help="Validate configuration and sensor access, then exit",
    )
    mode.add_argument(
        "--calibrate",
        action="store_true",
        help="Start with calibration mode on: alert at 100%% once, then restore the threshold",
    )
    return parser.parse_args(argv)


def build_store(config: "MonitorSettings") -> "SettingsStore":
    """Create the settings store from configuration plus saved preferences."""
    from juicekeeper.config import PreferencesFile, SettingsStore

    persistence = PreferencesFile(config.preferences_path) if config.preferences_path else None
    saved = persistence.read() if persistence else {}
    return SettingsStore(config.preferences(saved), persistence=persistence)


def handle_sighup(signum: int, frame: Optional[FrameType]) -> None:
    """Handle SIGHUP: reload configuration and push changed preferences."""
    from juicekeeper.config import PreferencesFile, reload_config
    from juicekeeper.logging import get_logger

    log = get_logger()
    log.info("received_sighup", action="reloading configuration")
    try:
        config = reload_config()
        if _store is not None:
            saved = PreferencesFile(config.preferences_path).read() if config.preferences_path else {}
            changes = _store.update(**config.preferences(saved).model_dump())
            log.info("config_reloaded", status="success", changed=[c.field for c in changes])
    except Exception as e:
        log.error("config_reload_failed", error=str(e))


def handle_stop(signum: int, frame: Optional[FrameType]) -> None:
    """Handle SIGTERM: stop the scheduler so the engine shuts down cleanly."""
    if _runner is not None:
        _runner.shutdown()


def print_banner(config: "MonitorSettings", store: "SettingsStore") -> None:
    """Print startup banner with version and preference summary."""
    preferences = store.preferences
    lines = [
        "",
        f"JuiceKeeper v{__version__}",
        "=" * 40,
        f"Alert Threshold:   {preferences.alert_threshold}%",
        f"Poll Interval:     {preferences.polling_interval_seconds:g}s",
        f"Temperature Alert: "
        + (
            f"{preferences.temperature_threshold_celsius:g} C"
            if preferences.temperature_alert_enabled
            else "off"
        ),
        f"Reminders:         "
        + (
            f"every {preferences.reminder_interval_minutes} min"
            if preferences.reminder_enabled
            else "off"
        ),
        f"Keep Awake:        {'on' if preferences.keep_awake_while_charging else 'off'}",
        f"Log Level:         {config.log_level}",
        "=" * 40,
        "",
    ]
    for line in lines:
        print(line)


def run_status(config: "MonitorSettings") -> int:
    """Read the sensor once and print a status line."""
    from juicekeeper.models import classify_status, describe_status
    from juicekeeper.sensors import PsutilSensorReader

    snapshot = PsutilSensorReader().read()
    if snapshot is None:
        print("No battery found", file=sys.stderr)
        return EXIT_SENSOR_UNAVAILABLE

    preferences = build_store(config).preferences
    status = classify_status(
        snapshot,
        preferences.temperature_threshold_celsius
        if preferences.temperature_alert_enabled
        else None,
    )
    print(describe_status(snapshot))
    print(f"Status: {status.value}")
    return EXIT_SUCCESS


def run_test(config: "MonitorSettings") -> int:
    """Validate configuration and sensor access."""
    from juicekeeper.sensors import PsutilSensorReader

    store = build_store(config)
    print_banner(config, store)
    snapshot = PsutilSensorReader().read()
    if snapshot is None:
        print("Sensor: no battery found", file=sys.stderr)
        return EXIT_SENSOR_UNAVAILABLE
    temperature = snapshot.temperature
    print(f"Sensor: OK ({snapshot.percentage}%)")
    print(f"Temperature: {temperature.value:.1f} C" if temperature.available else "Temperature: unavailable")
    print("Configuration and sensor: OK")
    return EXIT_SUCCESS


def run_service(config: "MonitorSettings", calibrate: bool = False) -> int:
    """Run the monitor until interrupted."""
    global _store, _runner

    from juicekeeper.delivery import NotificationDispatcher
    from juicekeeper.engine import MonitoringEngine
    from juicekeeper.health import HealthStatus, clear_health_status, update_health_status
    from juicekeeper.logging import get_logger
    from juicekeeper.power import DisplayWaker, SleepAssertion
    from juicekeeper.scheduler import ScheduledRunner
    from juicekeeper.sensors import PsutilSensorReader

    log = get_logger()
    health_file = Path(config.health_file)

    _store = build_store(config)
    print_banner(config, _store)
    update_health_status(HealthStatus.STARTING, path=health_file)

    def record_poll(snapshot) -> None:
        if snapshot is None:
            update_health_status(
                HealthStatus.DEGRADED, {"reason": "sensor unavailable"}, path=health_file
            )
        else:
            update_health_status(
                HealthStatus.HEALTHY,
                {"percentage": snapshot.percentage, "charging": snapshot.is_charging},
                path=health_file,
            )

    _runner = ScheduledRunner()
    notifier = NotificationDispatcher()
    display = DisplayWaker()
    engine = MonitoringEngine(
        store=_store,
        reader=PsutilSensorReader(),
        notifier=notifier,
        sleep_assertion=SleepAssertion(),
        timers=_runner.timers(),
        wake_display=display.wake,
        on_poll=record_poll,
    )

    if calibrate:
        engine.begin_calibration()

    # Signal handlers (SIGHUP is Unix only)
    signal.signal(signal.SIGTERM, handle_stop)
    if hasattr(signal, "SIGHUP"):
        signal.signal(signal.SIGHUP, handle_sighup)

    log.info("starting", version=__version__, calibrate=calibrate)
    try:
        _runner.run(engine)
    finally:
        notifier.shutdown(wait=True)
        display.shutdown()
        clear_health_status(health_file)
        _store = None
        _runner = None
    print("\nShutdown complete")
    return EXIT_SUCCESS


def main(argv: Optional[list] = None) -> int:
    """Main entry point for juicekeeper.

    Returns:
        Exit code (0=success, 1=config error, 2=sensor unavailable)
    """
    args = parse_args(argv)

    # Import here to allow --help without dependencies
    from juicekeeper.config import ConfigurationError, load_config
    from juicekeeper.logging import configure_logging

    try:
        config = load_config()
    except ConfigurationError as e:
        print(f"{e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(log_format=config.log_format, log_level=config.log_level)

    if args.status:
        return run_status(config)
    if args.test:
        return run_test(config)
    return run_service(config, calibrate=args.calibrate)


if __name__ == "__main__":
    sys.exit(main())
