"""Preference persistence with atomic writes for crash-safe saving."""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict

import structlog

from juicekeeper.config.settings import PREFERENCE_FIELDS, Preferences

log = structlog.get_logger()

SCHEMA_VERSION = "1.0"


class PreferencesFile:
    """Reads and writes user preferences as a small JSON document.

    Writes go to a temp file in the same directory followed by a rename, so
    a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str) -> None:
        """Initialize preferences file.

        Args:
            path: Location of the JSON file. Parent directories are created
                on first write.
        """
        self.path = Path(path).expanduser()

    def read(self) -> Dict[str, Any]:
        """Read saved preference values.

        Returns:
            Mapping of preference name to raw saved value, or an empty dict if:
            - File doesn't exist (first run)
            - File is corrupted/unparseable
            - File does not contain a JSON object
        """
        if not self.path.exists():
            log.debug("preferences_file_not_found", path=str(self.path))
            return {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log.warning("preferences_file_corrupted", path=str(self.path), error=str(e))
            return {}
        except OSError as e:
            log.warning("preferences_file_unreadable", path=str(self.path), error=str(e))
            return {}

        values = data.get("preferences") if isinstance(data, dict) else None
        if not isinstance(values, dict):
            log.warning(
                "preferences_file_missing_field",
                path=str(self.path),
                field="preferences",
            )
            return {}

        known = {k: v for k, v in values.items() if k in PREFERENCE_FIELDS}
        log.debug("preferences_loaded", path=str(self.path), count=len(known))
        return known

    def write(self, preferences: Preferences) -> None:
        """Write preferences atomically.

        Raises:
            OSError: If the directory cannot be created or written to.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        document = {
            "schema_version": SCHEMA_VERSION,
            "preferences": preferences.model_dump(),
        }
        content = json.dumps(document, indent=2) + "\n"

        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=".tmp-preferences-",
            suffix=".json",
        )
        try:
            with open(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            shutil.move(temp_path, self.path)
            log.debug("preferences_saved", path=str(self.path))
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise
