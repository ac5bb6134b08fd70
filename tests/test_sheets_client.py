from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

import pytest
from googleapiclient.errors import HttpError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tracker import sheets_client
from tracker.archive import rotate


class _FakeRequest:
    def __init__(self, callback):
        self._callback = callback

    def execute(self):
        return self._callback()


class _FakeValues:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def get(self, spreadsheetId: str, range: str):  # noqa: N803 - API compatibility
        self._service.calls.append(("values.get", range))
        if self._service.fail_values_get:
            return _FakeRequest(self._service.raise_bad_range)
        return _FakeRequest(lambda: {"values": self._service.values.get(range, [])})

    def update(self, spreadsheetId: str, range: str, valueInputOption: str, body: Dict[str, Any]):  # noqa: N803
        self._service.calls.append(("values.update", range, valueInputOption, body))
        return _FakeRequest(dict)

    def append(  # noqa: N803 - API compatibility
        self,
        spreadsheetId: str,
        range: str,
        valueInputOption: str,
        insertDataOption: str,
        body: Dict[str, Any],
    ):
        self._service.calls.append(("values.append", range, insertDataOption, body))
        return _FakeRequest(dict)


class _FakeSheets:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def copyTo(self, spreadsheetId: str, sheetId: int, body: Dict[str, Any]):  # noqa: N802 - API compatibility
        self._service.calls.append(("sheets.copyTo", sheetId, body))
        return _FakeRequest(lambda: {"sheetId": 99, "title": "Copy of Template"})


class _FakeSpreadsheets:
    def __init__(self, service: "_FakeService") -> None:
        self._service = service

    def values(self) -> _FakeValues:
        return _FakeValues(self._service)

    def sheets(self) -> _FakeSheets:
        return _FakeSheets(self._service)

    def get(self, spreadsheetId: str, includeGridData: bool, fields: str):  # noqa: N803 - API compatibility
        return _FakeRequest(lambda: {"sheets": [{"properties": props} for props in self._service.tabs]})

    def batchUpdate(self, spreadsheetId: str, body: Dict[str, Any]):  # noqa: N802 - API compatibility
        self._service.calls.append(("batchUpdate", body))
        if self._service.fail_batch:
            return _FakeRequest(self._service.raise_http_error)
        return _FakeRequest(dict)


class _FakeService:
    def __init__(self) -> None:
        self.values: Dict[str, List[List[Any]]] = {}
        self.tabs: List[Dict[str, Any]] = [
            {"title": "Next", "sheetId": 0, "index": 0},
            {"title": "Template", "sheetId": 7, "index": 1},
        ]
        self.calls: List[tuple] = []
        self.fail_batch = False
        self.fail_values_get = False

    def spreadsheets(self) -> _FakeSpreadsheets:
        return _FakeSpreadsheets(self)

    @staticmethod
    def raise_bad_range():
        class _Response(dict):
            status = 400
            reason = "Bad Request"

        raise HttpError(_Response(), b'{"error": {"message": "Unable to parse range: Next!H2"}}')

    @staticmethod
    def raise_http_error():
        class _Response(dict):
            status = 404
            reason = "Not Found"

        raise HttpError(_Response(), b'{"error": {"message": "Sheet not found"}}')


def _client(service: _FakeService) -> sheets_client.GoogleSheetsClient:
    return sheets_client.GoogleSheetsClient("sheet-123", service=service)


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Next", "'Next'"),
        ("Sheet Name", "'Sheet Name'"),
        ("Bob's Tab", "'Bob''s Tab'"),
    ],
)
def test_quote_title_always_wraps_in_single_quotes(title, expected):
    assert sheets_client.quote_title(title) == expected


def test_a1_range_quotes_titles() -> None:
    assert sheets_client.a1_range("2026-02-16 (2)", "A:K") == "'2026-02-16 (2)'!A:K"
    with pytest.raises(sheets_client.SheetsClientError):
        sheets_client.quote_title("  ")


def test_read_range_stringifies_cells() -> None:
    service = _FakeService()
    service.values["'Next'!A:K"] = [["Issue", "Status"], ["ADV-1", None, 3]]

    rows = _client(service).read_range("Next", "A:K")

    assert rows == [["Issue", "Status"], ["ADV-1", "", "3"]]


def test_write_range_uses_user_entered_values() -> None:
    service = _FakeService()

    _client(service).write_range("Next", "D5", [["Stage"]])

    assert service.calls == [("values.update", "'Next'!D5", "USER_ENTERED", {"values": [["Stage"]]})]


def test_append_row_inserts_rows() -> None:
    service = _FakeService()

    _client(service).append_row("Next", ["ADV-1", "In progress"])

    assert service.calls == [("values.append", "'Next'!A:A", "INSERT_ROWS", {"values": [["ADV-1", "In progress"]]})]


def test_list_tabs_reads_sheet_properties() -> None:
    tabs = _client(_FakeService()).list_tabs()

    assert tabs == [
        sheets_client.TabInfo(title="Next", tab_id=0, index=0),
        sheets_client.TabInfo(title="Template", tab_id=7, index=1),
    ]
    assert sheets_client.require_tab(tabs, "Template").tab_id == 7
    with pytest.raises(sheets_client.SheetNotFoundError, match="Available: Next, Template"):
        sheets_client.require_tab(tabs, "Archive")


def test_tab_operations_send_expected_requests() -> None:
    service = _FakeService()
    client = _client(service)

    new_id = client.duplicate_tab(7)
    client.rename_tab(new_id, "Next")
    client.move_tab(new_id, 0)

    assert new_id == 99
    assert service.calls == [
        ("sheets.copyTo", 7, {"destinationSpreadsheetId": "sheet-123"}),
        (
            "batchUpdate",
            {
                "requests": [
                    {"updateSheetProperties": {"properties": {"sheetId": 99, "title": "Next"}, "fields": "title"}}
                ]
            },
        ),
        (
            "batchUpdate",
            {"requests": [{"updateSheetProperties": {"properties": {"sheetId": 99, "index": 0}, "fields": "index"}}]},
        ),
    ]


def test_http_errors_are_wrapped() -> None:
    service = _FakeService()
    service.fail_batch = True

    with pytest.raises(sheets_client.SheetsApiResponseError):
        _client(service).rename_tab(0, "Archive")


def test_client_requires_credentials_or_service() -> None:
    with pytest.raises(sheets_client.SheetsCredentialsError):
        sheets_client.GoogleSheetsClient("sheet-123")


def test_build_client_reports_invalid_credentials() -> None:
    with pytest.raises(sheets_client.SheetsCredentialsError, match="missing fields"):
        sheets_client.build_client("sheet-123", '{"type": "service_account"}')


def test_rotate_reports_missing_active_tab_before_reading_carry_cell() -> None:
    service = _FakeService()
    service.tabs = [{"title": "Template", "sheetId": 7, "index": 0}]
    service.fail_values_get = True

    with pytest.raises(sheets_client.SheetNotFoundError, match="Next"):
        rotate(_client(service), carry_cell="H2", carry_target_cell="A2", today=date(2026, 3, 1))

    assert not [call for call in service.calls if call[0] in ("values.get", "batchUpdate", "sheets.copyTo")]
