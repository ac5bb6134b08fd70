"""Configuration helpers for the issue tracker sync."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from typing import Dict, Mapping, Optional

from tracker.models import DEFAULT_APP_LABELS, DEFAULT_ENVIRONMENT_LABELS


logger = logging.getLogger(__name__)


DEFAULT_SHEET_NAME = "Next"
DEFAULT_TEMPLATE_NAME = "Template"
DEFAULT_JIRA_BASE_URL = "https://jira.visma.com/browse"
DEFAULT_ISSUE_PREFIX = "ADV"
DEFAULT_VERSION_CELL = "H2"
DEFAULT_CARRY_TARGET_CELL = "A2"
DEFAULT_INITIAL_STATUS = "In progress"

ENV_VARIABLES: Mapping[str, str] = {
    "TRACKER_SPREADSHEET_ID": "spreadsheet_id",
    "TRACKER_CREDENTIALS": "credentials",
    "TRACKER_SHEET_NAME": "sheet_name",
    "TRACKER_JIRA_BASE_URL": "jira_base_url",
    "TRACKER_ISSUE_PREFIX": "issue_prefix",
}

_LABEL_FIELDS = ("environment_labels", "app_labels")


class SettingsError(ValueError):
    """Raised when the sync configuration is invalid."""


@dataclass
class SyncSettings:
    spreadsheet_id: str = ""
    credentials: str = ""
    sheet_name: str = DEFAULT_SHEET_NAME
    template_name: str = DEFAULT_TEMPLATE_NAME
    jira_base_url: str = DEFAULT_JIRA_BASE_URL
    issue_prefix: str = DEFAULT_ISSUE_PREFIX
    version_cell: str = DEFAULT_VERSION_CELL
    carry_target_cell: str = DEFAULT_CARRY_TARGET_CELL
    initial_status: str = DEFAULT_INITIAL_STATUS
    environment_labels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ENVIRONMENT_LABELS))
    app_labels: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_APP_LABELS))

    def with_overrides(self, **overrides: Optional[str]) -> "SyncSettings":
        """Return a copy where every non-empty override replaces the current value."""

        data = self.to_json()
        for key, value in overrides.items():
            if key not in data:
                raise SettingsError(f"Unknown setting: {key}")
            if value:
                data[key] = value
        return SyncSettings(**data)

    def to_json(self) -> Dict[str, object]:
        payload: Dict[str, object] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            payload[item.name] = dict(value) if isinstance(value, dict) else value
        return payload


def _read_settings_file(path: str) -> Dict[str, object]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except OSError as exc:
        raise SettingsError(f"Unable to read settings file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Settings file {path} is not valid JSON: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise SettingsError(f"Settings file {path} must contain a JSON object")
    return data


def _merge_labels(current: Mapping[str, str], value: object, key: str) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        raise SettingsError(f"{key} must be an object mapping values to labels")
    merged = dict(current)
    for name, label in value.items():
        if not isinstance(label, str):
            raise SettingsError(f"{key}.{name} must be a string")
        merged[str(name).lower()] = label
    return merged


def _apply(settings: SyncSettings, data: Mapping[str, object]) -> None:
    known = {item.name for item in fields(settings)}
    for key, value in data.items():
        if key not in known:
            logger.debug("Ignoring unknown setting %r", key)
            continue
        if key in _LABEL_FIELDS:
            setattr(settings, key, _merge_labels(getattr(settings, key), value, key))
        elif isinstance(value, str):
            setattr(settings, key, value.strip())
        else:
            raise SettingsError(f"{key} must be a string")


def load_sync_settings(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SyncSettings:
    """Return settings from defaults, an optional JSON file and the environment."""

    settings = SyncSettings()
    if path:
        _apply(settings, _read_settings_file(path))

    env = os.environ if environ is None else environ
    _apply(
        settings,
        {attribute: env[name] for name, attribute in ENV_VARIABLES.items() if env.get(name)},
    )
    return settings


__all__ = [
    "DEFAULT_JIRA_BASE_URL",
    "DEFAULT_SHEET_NAME",
    "DEFAULT_TEMPLATE_NAME",
    "ENV_VARIABLES",
    "SettingsError",
    "SyncSettings",
    "load_sync_settings",
]
