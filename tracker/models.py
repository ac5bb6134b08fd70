"""Domain records shared by the sync pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

ENVIRONMENTS: Tuple[str, ...] = ("internal", "stage", "production")
APPS: Tuple[str, ...] = ("web", "admin", "cm")
TERMINAL_ENVIRONMENT = "production"

DEFAULT_ENVIRONMENT_LABELS: Mapping[str, str] = {
    "internal": "Internal",
    "stage": "Stage",
    "production": "Production",
}
DEFAULT_APP_LABELS: Mapping[str, str] = {
    "web": "Web",
    "admin": "Admin",
    "cm": "CM",
}


@dataclass(frozen=True)
class IssueRecord:
    """One tracked work item extracted from source-control activity."""

    issue_key: str
    title: str = ""
    author: str = ""
    environment: str = "internal"
    app: str = ""
    url: str = ""


def format_label(value: str, labels: Mapping[str, str]) -> str:
    """Map ``value`` through ``labels`` case-insensitively, passing unknowns through."""

    return labels.get((value or "").lower(), value)


def format_environment(value: str, labels: Optional[Mapping[str, str]] = None) -> str:
    return format_label(value, labels if labels is not None else DEFAULT_ENVIRONMENT_LABELS)


def format_app(value: str, labels: Optional[Mapping[str, str]] = None) -> str:
    return format_label(value, labels if labels is not None else DEFAULT_APP_LABELS)


__all__ = [
    "APPS",
    "DEFAULT_APP_LABELS",
    "DEFAULT_ENVIRONMENT_LABELS",
    "ENVIRONMENTS",
    "IssueRecord",
    "TERMINAL_ENVIRONMENT",
    "format_app",
    "format_environment",
    "format_label",
]
