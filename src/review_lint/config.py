from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date, datetime, time
from enum import Enum
import math
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

from review_lint.exceptions import ConfigError
from review_lint.json_types import JSONValue

DEFAULT_CONFIG_NAME = "review_lint.toml"
CONFIG_SECTION = "review_lint"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


class ScopeMode(str, Enum):
    ALL_ACTIVE_PROJECTS = "ALL_ACTIVE_PROJECTS"
    FOLDER_SCOPE = "FOLDER_SCOPE"
    TAG_SCOPE = "TAG_SCOPE"


@dataclass(frozen=True)
class LintConfig:
    review_tag_name: str = "⚠ Review Lint"
    also_flag: bool = False
    scope_mode: ScopeMode = ScopeMode.ALL_ACTIVE_PROJECTS
    scope_folder_id: str | None = None
    scope_tag_id: str | None = None
    exclude_tag_names: tuple[str, ...] = ("Someday/Maybe",)
    include_on_hold_projects: bool = False
    lint_tasks_enabled: bool = True
    inbox_max_age_days: int = 2
    defer_past_grace_days: int = 7
    waiting_tag_name: str = "Waiting"
    waiting_stale_days: int = 21
    enable_waiting_since_stamp: bool = True
    triage_tag_name: str = "Needs Triage"

    def as_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for entry in fields(self):
            value = getattr(self, entry.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = ", ".join(value)
            payload[entry.name] = value
        return payload


DEFAULTS = LintConfig()
CONFIG_KEYS: tuple[str, ...] = tuple(entry.name for entry in fields(LintConfig))

_BOOL_KEYS = frozenset(
    {"also_flag", "include_on_hold_projects", "lint_tasks_enabled", "enable_waiting_since_stamp"}
)
_INT_KEYS = frozenset(
    {"inbox_max_age_days", "defer_past_grace_days", "waiting_stale_days"}
)
_OPTIONAL_ID_KEYS = frozenset({"scope_folder_id", "scope_tag_id"})
_TRUTHY_VALUES = {"1", "true", "yes", "on"}
_FALSEY_VALUES = {"0", "false", "no", "off"}


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config_file(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def lint_defaults(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    data = load_config_file(root=root, config_path=config_path)
    section = data.get(CONFIG_SECTION, {})
    return section if isinstance(section, dict) else {}


def parse_exclude_tags(value: object) -> tuple[str, ...]:
    items: list[str] = []
    if value is None:
        return ()
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",") if part.strip()]
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            if isinstance(item, str):
                items.extend([part.strip() for part in item.split(",") if part.strip()])
    return tuple(item for item in items if item)


def _as_bool(value: object, fallback: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUTHY_VALUES:
            return True
        if lowered in _FALSEY_VALUES:
            return False
    return fallback


def _as_non_negative_int(value: object, fallback: int) -> int:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return fallback
    if isinstance(value, (int, float)) and math.isfinite(value) and value >= 0:
        return int(value)
    return fallback


def _as_scope_mode(value: object, fallback: ScopeMode | None) -> ScopeMode | None:
    if isinstance(value, ScopeMode):
        return value
    if isinstance(value, str):
        try:
            return ScopeMode(value.strip().upper())
        except ValueError:
            return fallback
    return fallback


def read_pref(key: str, value: object) -> object:
    """Coerce one stored value for ``key``; invalid values fall back to the default."""
    fallback = getattr(DEFAULTS, key)
    if value is None:
        return fallback
    if key in _BOOL_KEYS:
        return _as_bool(value, fallback)
    if key in _INT_KEYS:
        return _as_non_negative_int(value, fallback)
    if key == "scope_mode":
        return _as_scope_mode(value, fallback)
    if key == "exclude_tag_names":
        return parse_exclude_tags(value)
    if key in _OPTIONAL_ID_KEYS:
        text = str(value).strip()
        return text or None
    return str(value)


def validate_pref(key: str, value: object) -> JSONValue:
    """Strict counterpart of :func:`read_pref` used before a value is stored.

    Returns the normalized value to persist; anything :func:`read_pref` would
    silently replace with a default raises :class:`ConfigError` instead.
    """
    if key not in CONFIG_KEYS:
        raise ConfigError(f"Unknown setting {key!r}. Known settings: {', '.join(CONFIG_KEYS)}")
    if key in _BOOL_KEYS:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _TRUTHY_VALUES | _FALSEY_VALUES:
            return value.strip().lower() in _TRUTHY_VALUES
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    if key in _INT_KEYS:
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigError(f"{key} must be a whole number of days (0 or more), got {value!r}")
        return value
    if key == "scope_mode":
        mode = _as_scope_mode(value, None) if isinstance(value, str) else None
        if mode is None:
            choices = ", ".join(member.value for member in ScopeMode)
            raise ConfigError(f"scope_mode must be one of: {choices}; got {value!r}")
        return mode.value
    if key == "exclude_tag_names":
        if isinstance(value, list) and all(isinstance(item, str) for item in value):
            return ", ".join(parse_exclude_tags(value))
        if not isinstance(value, str):
            raise ConfigError(f"exclude_tag_names must be comma-separated tag names, got {value!r}")
        return ", ".join(parse_exclude_tags(value))
    if key in _OPTIONAL_ID_KEYS:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ConfigError(f"{key} must be an id string, got {value!r}")
        return value.strip() or None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{key} must be a non-empty tag name, got {value!r}")
    return value.strip()


def merge_payload(payload: Mapping[str, object], defaults: Mapping[str, object]) -> dict[str, object]:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def build_config(*layers: Mapping[str, object]) -> LintConfig:
    """Fold raw setting layers (lowest precedence first) into a ``LintConfig``.

    Unknown keys are ignored; each known key goes through :func:`read_pref`.
    """
    merged: dict[str, object] = {}
    for layer in layers:
        merged = merge_payload(layer, merged)
    overrides = {
        key: read_pref(key, merged[key]) for key in CONFIG_KEYS if key in merged
    }
    return replace(DEFAULTS, **overrides)


def load_config(
    *,
    root: Path | None = None,
    config_path: Path | None = None,
    preferences: Mapping[str, object] | None = None,
) -> LintConfig:
    return build_config(lint_defaults(root=root, config_path=config_path), preferences or {})
