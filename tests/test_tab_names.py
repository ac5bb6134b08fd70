from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tracker.tab_names import archive_date_label, unique_tab_name


def test_unique_tab_name_returns_base_without_collision() -> None:
    assert unique_tab_name("2026-02-16", ["Next", "Template"]) == "2026-02-16"


def test_unique_tab_name_appends_two_on_first_collision() -> None:
    assert unique_tab_name("2026-02-16", ["2026-02-16", "Next"]) == "2026-02-16 (2)"


def test_unique_tab_name_probes_suffixes_in_order() -> None:
    existing = ["2026-02-16", "2026-02-16 (2)", "2026-02-16 (3)", "2026-02-16 (4)"]

    assert unique_tab_name("2026-02-16", existing) == "2026-02-16 (5)"


def test_unique_tab_name_fills_first_gap() -> None:
    existing = ["2026-02-16", "2026-02-16 (3)"]

    assert unique_tab_name("2026-02-16", existing) == "2026-02-16 (2)"


def test_unique_tab_name_never_returns_a_taken_name() -> None:
    existing = {"base"} | {f"base ({n})" for n in range(2, 40)}

    result = unique_tab_name("base", existing)

    assert result not in existing
    assert result == "base (40)"


def test_archive_date_label_formats_iso_date() -> None:
    assert archive_date_label(date(2026, 2, 6)) == "2026-02-06"
