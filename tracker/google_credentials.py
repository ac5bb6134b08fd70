"""Helpers for validating Google service account credentials.

Credentials reach the sync either as the raw JSON document (typically from a
CI secret) or as a path to the JSON file on disk.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, Mapping, Union

__all__ = [
    "CredentialsFileInvalidError",
    "REQUIRED_FIELDS",
    "load_service_account_data",
    "load_service_account_info",
]


class CredentialsFileInvalidError(Exception):
    """Raised when service account credentials are missing required data."""


REQUIRED_FIELDS: Iterable[str] = (
    "type",
    "project_id",
    "private_key_id",
    "private_key",
    "client_email",
    "token_uri",
)


def _normalise_private_key(key: str) -> str:
    key = key.replace("\r\n", "\n").replace("\r", "\n")
    key = key.replace("\\n", "\n")
    if not key.endswith("\n"):
        key += "\n"
    return key


def _parse_json(text: str) -> Mapping[str, object]:
    payload_text = text.lstrip("\ufeff").strip()
    if not payload_text:
        raise CredentialsFileInvalidError("Service account JSON is empty.")
    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise CredentialsFileInvalidError(f"JSON parse error: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise CredentialsFileInvalidError("Service account JSON must be an object.")
    return payload


def _load_json(path: Path) -> Mapping[str, object]:
    try:
        with path.open("r", encoding="utf-8-sig") as handle:
            raw = handle.read()
    except OSError as exc:
        raise CredentialsFileInvalidError(f"Unable to read JSON file: {exc}") from exc
    return _parse_json(raw)


def _validate_payload(payload: Mapping[str, object]) -> Dict[str, object]:
    data: Dict[str, object] = dict(payload)
    missing: list[str] = []

    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            missing.append(field)

    if data.get("type") != "service_account":
        missing.append("type")

    if missing:
        ordered = ", ".join(sorted(dict.fromkeys(missing)))
        raise CredentialsFileInvalidError(f"JSON missing fields: {ordered}")

    data["private_key"] = _normalise_private_key(str(data["private_key"]))
    return data


def load_service_account_data(path: Path) -> Dict[str, object]:
    """Return validated service account data read from ``path``."""

    return _validate_payload(_load_json(path))


def load_service_account_info(source: Union[str, Path]) -> Dict[str, object]:
    """Return validated service account data from inline JSON or a file path."""

    if isinstance(source, Path):
        return load_service_account_data(source)
    text = (source or "").strip()
    if text.startswith("{"):
        return _validate_payload(_parse_json(text))
    if not text:
        raise CredentialsFileInvalidError("No service account credentials were provided.")
    path = Path(text).expanduser()
    if not path.exists():
        raise CredentialsFileInvalidError(f"Credentials file not found: {path}")
    return load_service_account_data(path)
