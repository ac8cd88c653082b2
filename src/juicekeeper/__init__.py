"""
JuiceKeeper - Keep an eye on battery charge and temperature.

This package polls the battery sensor, raises edge-triggered alerts when the
charge crosses a configured threshold or the pack runs hot, sends periodic
reminders while the condition persists, and holds an idle-sleep assertion
while the machine charges towards the threshold.

Features:
- Configuration via YAML with environment variable overrides
- Clamped user preferences persisted to a JSON file
- Structured logging (JSON for production, text for development)
- Deterministic engine driven through a pluggable timer abstraction
"""

__version__ = "0.3.0"
__all__ = ["__version__"]
