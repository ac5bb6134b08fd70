"""Workbook store backed by a JSON file (or plain memory).

``LocalWorkbook`` implements the same operations as
:class:`tracker.sheets_client.GoogleSheetsClient` so a sync can be rehearsed
against a local file and the reconciliation logic can be tested without the
Google API.  Values are stored verbatim, so a hyperlink formula written into a
cell is read back as the formula text rather than its display value.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from tracker.sheets_client import SheetNotFoundError, SheetsClientError, TabInfo


@dataclass(frozen=True)
class _CellRef:
    row: Optional[int]
    column: Optional[int]


@dataclass
class _Tab:
    tab_id: int
    title: str
    rows: List[List[str]]


_CELL_RE = re.compile(r"^(?P<col>[A-Z]*)(?P<row>\d*)$")


class LocalWorkbook:
    """In-memory workbook, optionally persisted to ``path`` after every change."""

    def __init__(
        self,
        path: Optional[Path] = None,
        *,
        tabs: Optional[Mapping[str, Sequence[Sequence[Any]]]] = None,
    ) -> None:
        self._path = path
        self._tabs: List[_Tab] = []
        if path is not None and path.exists():
            self._load(path)
        for title, rows in (tabs or {}).items():
            self.add_tab(title, rows)

    # ------------------------------------------------------------------
    # Convenience helpers
    # ------------------------------------------------------------------
    @property
    def url(self) -> str:
        return str(self._path) if self._path is not None else "memory"

    def add_tab(self, title: str, rows: Sequence[Sequence[Any]] = ()) -> int:
        if self._find(title) is not None:
            raise SheetsClientError(f'A sheet named "{title}" already exists')
        tab_id = self._next_id()
        self._tabs.append(_Tab(tab_id=tab_id, title=title, rows=[_stringify(row) for row in rows]))
        self._save()
        return tab_id

    def rows(self, title: str) -> List[List[str]]:
        """Return a copy of every stored row of ``title``."""

        return [list(row) for row in self._require(title).rows]

    def titles(self) -> List[str]:
        return [tab.title for tab in self._tabs]

    # ------------------------------------------------------------------
    # Store interface
    # ------------------------------------------------------------------
    def list_tabs(self) -> List[TabInfo]:
        return [TabInfo(title=tab.title, tab_id=tab.tab_id, index=index) for index, tab in enumerate(self._tabs)]

    def read_range(self, tab: str, cells: str) -> List[List[str]]:
        start, end = _parse_cells(cells)
        return _slice_rows(self._require(tab).rows, start, end)

    def write_range(self, tab: str, cells: str, values: Sequence[Sequence[Any]]) -> None:
        target = self._require(tab)
        start, _end = _parse_cells(cells)
        base_row = start.row or 1
        base_col = start.column or 1
        for row_offset, row in enumerate(values):
            for col_offset, cell in enumerate(row):
                _set_cell(target.rows, base_row + row_offset, base_col + col_offset, cell)
        self._save()

    def append_row(self, tab: str, values: Sequence[Any]) -> None:
        target = self._require(tab)
        last = len(target.rows)
        while last and not any(cell != "" for cell in target.rows[last - 1]):
            last -= 1
        del target.rows[last:]
        target.rows.append(_stringify(values))
        self._save()

    def rename_tab(self, tab_id: int, title: str) -> None:
        target = self._by_id(tab_id)
        clash = self._find(title)
        if clash is not None and clash is not target:
            raise SheetsClientError(f'A sheet named "{title}" already exists')
        target.title = title
        self._save()

    def duplicate_tab(self, tab_id: int) -> int:
        source = self._by_id(tab_id)
        title = f"Copy of {source.title}"
        counter = 2
        while self._find(title) is not None:
            title = f"Copy of {source.title} {counter}"
            counter += 1
        new_id = self._next_id()
        self._tabs.append(_Tab(tab_id=new_id, title=title, rows=[list(row) for row in source.rows]))
        self._save()
        return new_id

    def move_tab(self, tab_id: int, index: int) -> None:
        target = self._by_id(tab_id)
        self._tabs.remove(target)
        self._tabs.insert(max(0, min(index, len(self._tabs))), target)
        self._save()

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _load(self, path: Path) -> None:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        self._tabs = [
            _Tab(
                tab_id=int(entry.get("id", position)),
                title=str(entry.get("title", "")),
                rows=[_stringify(row) for row in entry.get("rows", [])],
            )
            for position, entry in enumerate(payload.get("sheets", []))
        ]

    def _save(self) -> None:
        if self._path is None:
            return
        if self._path.parent:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "sheets": [{"id": tab.tab_id, "title": tab.title, "rows": tab.rows} for tab in self._tabs]
        }
        with open(self._path, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2)

    def _find(self, title: str) -> Optional[_Tab]:
        for tab in self._tabs:
            if tab.title == title:
                return tab
        return None

    def _require(self, title: str) -> _Tab:
        tab = self._find(title)
        if tab is None:
            raise SheetNotFoundError(f'Sheet "{title}" not found')
        return tab

    def _by_id(self, tab_id: int) -> _Tab:
        for tab in self._tabs:
            if tab.tab_id == tab_id:
                return tab
        raise SheetNotFoundError(f"Sheet id {tab_id} not found")

    def _next_id(self) -> int:
        return max((tab.tab_id for tab in self._tabs), default=-1) + 1


def _stringify(row: Sequence[Any]) -> List[str]:
    return ["" if cell is None else str(cell) for cell in row]


def _set_cell(rows: List[List[str]], row: int, column: int, value: Any) -> None:
    while len(rows) < row:
        rows.append([])
    current = rows[row - 1]
    while len(current) < column:
        current.append("")
    current[column - 1] = "" if value is None else str(value)


def _slice_rows(rows: Sequence[Sequence[str]], start: _CellRef, end: _CellRef) -> List[List[str]]:
    if not rows:
        return []
    min_row = max(1, start.row or 1)
    min_col = max(1, start.column or 1)
    max_row = end.row or len(rows)
    max_col = end.column or max(len(row) for row in rows)
    sliced: List[List[str]] = []
    for row_index in range(min_row - 1, min(max_row, len(rows))):
        row = rows[row_index]
        current = [str(row[col_index]) for col_index in range(min_col - 1, min(max_col, len(row)))]
        while current and current[-1] == "":
            current.pop()
        sliced.append(current)
    while sliced and not sliced[-1]:
        sliced.pop()
    return sliced


def _parse_cells(cells: str) -> Tuple[_CellRef, _CellRef]:
    text = cells.strip().upper()
    if "!" in text:
        raise ValueError(f"Range must not include a sheet title: {cells!r}")
    if ":" in text:
        start_text, end_text = text.split(":", 1)
    else:
        start_text = end_text = text
    return _parse_cell(start_text), _parse_cell(end_text)


def _parse_cell(value: str) -> _CellRef:
    match = _CELL_RE.match(value.strip())
    if not match or not value.strip():
        raise ValueError(f"Invalid cell reference: {value!r}")
    column_label = match.group("col")
    row_text = match.group("row")
    column = _column_index(column_label) if column_label else None
    row = int(row_text) if row_text else None
    return _CellRef(row=row, column=column)


def _column_index(label: str) -> int:
    index = 0
    for char in label:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


__all__ = ["LocalWorkbook"]
