from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tracker.local_workbook import LocalWorkbook
from tracker.sheets_client import SheetNotFoundError, SheetsClientError, build_client


def test_read_range_trims_trailing_blanks_like_the_sheets_api() -> None:
    workbook = LocalWorkbook(tabs={"Next": [["Issue", "Status", ""], ["ADV-1", ""], [], ["", ""]]})

    assert workbook.read_range("Next", "A:K") == [["Issue", "Status"], ["ADV-1"]]
    assert workbook.read_range("Next", "B1") == [["Status"]]
    assert workbook.read_range("Next", "A2:B2") == [["ADV-1"]]


def test_write_range_extends_rows_and_columns() -> None:
    workbook = LocalWorkbook(tabs={"Next": [["Issue"]]})

    workbook.write_range("Next", "D3", [["Stage"]])

    assert workbook.rows("Next") == [["Issue"], [], ["", "", "", "Stage"]]


def test_append_row_reuses_trailing_blank_rows() -> None:
    workbook = LocalWorkbook(tabs={"Next": [["Issue"], ["ADV-1"], ["", ""]]})

    workbook.append_row("Next", ["ADV-2", "In progress"])

    assert workbook.rows("Next") == [["Issue"], ["ADV-1"], ["ADV-2", "In progress"]]


def test_tab_operations_update_metadata() -> None:
    workbook = LocalWorkbook(tabs={"Next": [], "Template": [["Issue"]]})
    template_id = workbook.list_tabs()[1].tab_id

    copy_id = workbook.duplicate_tab(template_id)
    assert workbook.titles() == ["Next", "Template", "Copy of Template"]

    workbook.rename_tab(copy_id, "Fresh")
    workbook.move_tab(copy_id, 0)

    tabs = workbook.list_tabs()
    assert [(tab.title, tab.index) for tab in tabs] == [("Fresh", 0), ("Next", 1), ("Template", 2)]
    assert workbook.rows("Fresh") == [["Issue"]]


def test_rename_to_existing_title_is_rejected() -> None:
    workbook = LocalWorkbook(tabs={"Next": [], "Template": []})

    with pytest.raises(SheetsClientError):
        workbook.rename_tab(workbook.list_tabs()[0].tab_id, "Template")


def test_unknown_tab_raises_not_found() -> None:
    workbook = LocalWorkbook()

    with pytest.raises(SheetNotFoundError):
        workbook.read_range("Next", "A:K")
    with pytest.raises(SheetNotFoundError):
        workbook.rename_tab(42, "Other")


def test_workbook_persists_to_json_file(tmp_path: Path) -> None:
    path = tmp_path / "tracker.json"
    workbook = LocalWorkbook(path, tabs={"Next": [["Issue"]]})
    workbook.write_range("Next", "A2", [["ADV-1"]])

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["sheets"][0]["title"] == "Next"

    reloaded = build_client(str(path))
    assert isinstance(reloaded, LocalWorkbook)
    assert reloaded.read_range("Next", "A:K") == [["Issue"], ["ADV-1"]]
