"""Naming helpers for archived worksheet tabs."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional


def unique_tab_name(base: str, existing_names: Iterable[str]) -> str:
    """Return ``base`` or the first ``"base (n)"`` (n >= 2) not already taken."""

    taken = set(existing_names)
    if base not in taken:
        return base
    counter = 2
    while f"{base} ({counter})" in taken:
        counter += 1
    return f"{base} ({counter})"


def archive_date_label(today: Optional[date] = None) -> str:
    """Return the ``YYYY-MM-DD`` label used to seed archive tab names."""

    return (today or date.today()).strftime("%Y-%m-%d")


__all__ = ["archive_date_label", "unique_tab_name"]
