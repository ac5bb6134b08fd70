"""Google Sheets client exposing the narrow store interface used by the sync.

The reconciliation code never touches ``googleapiclient`` directly.  It talks
to a :class:`SheetStore`, which offers exactly the operations the sync needs:

* ``list_tabs`` returns the title, id and display position of every tab.
* ``read_range`` / ``write_range`` move cell values for an A1 range.
* ``append_row`` appends one row after the last populated row of a tab.
* ``rename_tab``, ``duplicate_tab`` and ``move_tab`` change tab metadata.

:class:`GoogleSheetsClient` implements the interface against the Sheets REST
API and :class:`tracker.local_workbook.LocalWorkbook` implements it against a
JSON file, which keeps the engine testable without network access.  All API
failures surface as :class:`SheetsClientError` subclasses; nothing here retries.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from tracker.google_credentials import CredentialsFileInvalidError, load_service_account_info

SCOPES: Sequence[str] = ("https://www.googleapis.com/auth/spreadsheets",)
DEFAULT_VALUE_INPUT_OPTION = "USER_ENTERED"


@dataclass(frozen=True)
class TabInfo:
    """Metadata describing one worksheet tab."""

    title: str
    tab_id: int
    index: int


class SheetsClientError(RuntimeError):
    """Base error raised for store failures."""


class SheetsDependencyError(SheetsClientError):
    """Raised when the Google API client cannot be constructed."""


class SheetsCredentialsError(SheetsClientError):
    """Raised when the provided credentials are invalid or missing."""


class SheetsApiResponseError(SheetsClientError):
    """Raised when the Google API returns an error response."""


class SheetNotFoundError(SheetsClientError):
    """Raised when a tab required by the sync does not exist."""


class SheetStore(Protocol):
    def list_tabs(self) -> List[TabInfo]: ...

    def read_range(self, tab: str, cells: str) -> List[List[str]]: ...

    def write_range(self, tab: str, cells: str, values: Sequence[Sequence[Any]]) -> None: ...

    def append_row(self, tab: str, values: Sequence[Any]) -> None: ...

    def rename_tab(self, tab_id: int, title: str) -> None: ...

    def duplicate_tab(self, tab_id: int) -> int: ...

    def move_tab(self, tab_id: int, index: int) -> None: ...


def quote_title(title: str) -> str:
    """Return a worksheet title quoted according to A1 notation rules."""

    safe = (title or "").strip()
    if not safe:
        raise SheetsClientError("Worksheet title must not be empty.")
    safe = safe.replace("'", "''")
    return f"'{safe}'"


def a1_range(title: str, cells: str) -> str:
    return f"{quote_title(title)}!{cells}"


def find_tab(tabs: Sequence[TabInfo], title: str) -> Optional[TabInfo]:
    for tab in tabs:
        if tab.title == title:
            return tab
    return None


def require_tab(tabs: Sequence[TabInfo], title: str) -> TabInfo:
    tab = find_tab(tabs, title)
    if tab is None:
        available = ", ".join(item.title for item in tabs) or "none"
        raise SheetNotFoundError(f'Sheet "{title}" not found. Available: {available}')
    return tab


def _build_service(credentials: Union[str, Path]):
    try:
        payload = load_service_account_info(credentials)
    except CredentialsFileInvalidError as exc:
        raise SheetsCredentialsError(str(exc)) from exc

    try:
        google_credentials = service_account.Credentials.from_service_account_info(payload, scopes=SCOPES)
    except (ValueError, KeyError) as exc:
        raise SheetsCredentialsError(str(exc)) from exc

    try:
        return build("sheets", "v4", credentials=google_credentials, cache_discovery=False)
    except Exception as exc:  # pragma: no cover - discovery/auth failures
        raise SheetsDependencyError(str(exc)) from exc


class GoogleSheetsClient:
    """Concrete store that speaks to Google Sheets using the REST API."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials: Union[str, Path, None] = None,
        *,
        service=None,
        value_input_option: str = DEFAULT_VALUE_INPUT_OPTION,
    ) -> None:
        if service is None and credentials is None:
            raise SheetsCredentialsError("Google credentials are required to reach the spreadsheet.")
        self._spreadsheet_id = spreadsheet_id
        self._value_input_option = value_input_option
        self._service = service or _build_service(credentials)

    @property
    def spreadsheet_id(self) -> str:
        return self._spreadsheet_id

    @property
    def url(self) -> str:
        return f"https://docs.google.com/spreadsheets/d/{self._spreadsheet_id}"

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------
    def read_range(self, tab: str, cells: str) -> List[List[str]]:
        request = (
            self._service.spreadsheets()
            .values()
            .get(spreadsheetId=self._spreadsheet_id, range=a1_range(tab, cells))
        )
        response = self._execute(request)
        values = response.get("values", []) if isinstance(response, dict) else []
        return [["" if cell is None else str(cell) for cell in row] for row in values]

    def write_range(self, tab: str, cells: str, values: Sequence[Sequence[Any]]) -> None:
        request = (
            self._service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self._spreadsheet_id,
                range=a1_range(tab, cells),
                valueInputOption=self._value_input_option,
                body={"values": [list(row) for row in values]},
            )
        )
        self._execute(request)

    def append_row(self, tab: str, values: Sequence[Any]) -> None:
        request = (
            self._service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self._spreadsheet_id,
                range=a1_range(tab, "A:A"),
                valueInputOption=self._value_input_option,
                insertDataOption="INSERT_ROWS",
                body={"values": [list(values)]},
            )
        )
        self._execute(request)

    # ------------------------------------------------------------------
    # Tab metadata
    # ------------------------------------------------------------------
    def list_tabs(self) -> List[TabInfo]:
        request = self._service.spreadsheets().get(
            spreadsheetId=self._spreadsheet_id,
            includeGridData=False,
            fields="sheets.properties",
        )
        response = self._execute(request)
        tabs: List[TabInfo] = []
        for position, sheet in enumerate(response.get("sheets", [])):
            properties = sheet.get("properties", {})
            tabs.append(
                TabInfo(
                    title=str(properties.get("title", "")),
                    tab_id=int(properties.get("sheetId", 0)),
                    index=int(properties.get("index", position)),
                )
            )
        return tabs

    def rename_tab(self, tab_id: int, title: str) -> None:
        self._batch_update(
            {
                "updateSheetProperties": {
                    "properties": {"sheetId": tab_id, "title": title},
                    "fields": "title",
                }
            }
        )

    def duplicate_tab(self, tab_id: int) -> int:
        request = (
            self._service.spreadsheets()
            .sheets()
            .copyTo(
                spreadsheetId=self._spreadsheet_id,
                sheetId=tab_id,
                body={"destinationSpreadsheetId": self._spreadsheet_id},
            )
        )
        response = self._execute(request)
        try:
            return int(response["sheetId"])
        except (KeyError, TypeError, ValueError) as exc:
            raise SheetsApiResponseError(f"Copy of sheet {tab_id} returned no sheet id") from exc

    def move_tab(self, tab_id: int, index: int) -> None:
        self._batch_update(
            {
                "updateSheetProperties": {
                    "properties": {"sheetId": tab_id, "index": index},
                    "fields": "index",
                }
            }
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _batch_update(self, *requests: Dict[str, Any]) -> None:
        request = self._service.spreadsheets().batchUpdate(
            spreadsheetId=self._spreadsheet_id,
            body={"requests": list(requests)},
        )
        self._execute(request)

    @staticmethod
    def _execute(request) -> Dict[str, Any]:
        try:
            return request.execute() or {}
        except HttpError as exc:
            raise SheetsApiResponseError(str(exc)) from exc


def is_local_target(spreadsheet_id: str) -> bool:
    return Path(spreadsheet_id).suffix.lower() == ".json"


def build_client(spreadsheet_id: str, credentials: Union[str, Path, None] = None) -> SheetStore:
    """Factory returning a local workbook for ``*.json`` targets, else a Sheets client."""

    if is_local_target(spreadsheet_id):
        from tracker.local_workbook import LocalWorkbook

        return LocalWorkbook(Path(spreadsheet_id).expanduser())
    return GoogleSheetsClient(spreadsheet_id, credentials)


__all__ = [
    "GoogleSheetsClient",
    "SheetNotFoundError",
    "SheetStore",
    "SheetsApiResponseError",
    "SheetsClientError",
    "SheetsCredentialsError",
    "SheetsDependencyError",
    "TabInfo",
    "a1_range",
    "build_client",
    "find_tab",
    "is_local_target",
    "quote_title",
    "require_tab",
]
