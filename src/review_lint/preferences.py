from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Mapping

from review_lint.config import validate_pref
from review_lint.json_types import JSONObject, JSONValue

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES_PATH = Path(".review_lint") / "preferences.json"


def load_json_object_path(path: Path, *, encoding: str = "utf-8") -> JSONObject:
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding=encoding))
    except (OSError, UnicodeError, json.JSONDecodeError):
        logger.warning("Ignoring unreadable preferences file %s", path)
        return {}
    if not isinstance(payload, Mapping):
        return {}
    return {str(key): value for key, value in payload.items()}


def dump_json_pretty(payload: object) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)


class PreferenceStore:
    """Key-value preference storage backed by a JSON object file.

    Writes hit the disk immediately; a missing or corrupt file reads as empty.
    """

    def __init__(self, path: Path = DEFAULT_PREFERENCES_PATH) -> None:
        self.path = path

    def as_dict(self) -> JSONObject:
        return load_json_object_path(self.path)

    def read(self, key: str) -> JSONValue:
        return self.as_dict().get(key)

    def write(self, key: str, value: JSONValue) -> JSONValue:
        """Validate and persist one setting; returns the value actually stored."""
        stored = validate_pref(key, value)
        payload = self.as_dict()
        payload[key] = stored
        self._dump(payload)
        return stored

    def remove(self, key: str) -> bool:
        payload = self.as_dict()
        if key not in payload:
            return False
        del payload[key]
        self._dump(payload)
        return True

    def _dump(self, payload: JSONObject) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(dump_json_pretty(payload) + "\n", encoding="utf-8")
        logger.debug("Wrote %d preferences to %s", len(payload), self.path)
