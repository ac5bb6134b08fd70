"""Index the rows of the active tab by issue key.

The index is rebuilt from the sheet at the start of every run and afterwards
only updated in memory, so rows added by the same run are tracked without
reading the sheet again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Set

from tracker.issue_keys import DEFAULT_KEY_PREFIX, extract_issue_key

logger = logging.getLogger(__name__)

HEADER_LABEL = "issue"
ISSUE_COLUMN = 0
DEBUG_DUMP_ROWS = 10


@dataclass
class SheetIndex:
    """Row positions discovered in the active tab.

    ``header_row`` is the 0-based position of the header within the scanned
    values.  ``row_index`` and ``empty_row_cursor`` hold 1-based sheet row
    numbers, the numbers used in A1 ranges.
    """

    header_row: int
    row_index: Dict[str, int] = field(default_factory=dict)
    empty_row_cursor: int = 1
    header_found: bool = True
    occupied_rows: Set[int] = field(default_factory=set)

    def row_for(self, issue_key: str) -> Optional[int]:
        return self.row_index.get(issue_key)

    def allocate_row(self, issue_key: str) -> int:
        """Claim the next free row for ``issue_key`` and record it in the index.

        Rows whose key cell already holds a value are skipped so that an
        insert never lands on top of an existing issue.
        """

        row = self.empty_row_cursor
        while row in self.occupied_rows:
            row += 1
        self.row_index[issue_key] = row
        self.occupied_rows.add(row)
        self.empty_row_cursor = row + 1
        return row


def _cell(row: Sequence[object], column: int) -> str:
    if row is None or column >= len(row):
        return ""
    value = row[column]
    return "" if value is None else str(value).strip()


def find_header_row(rows: Sequence[Sequence[object]], issue_column: int = ISSUE_COLUMN) -> Optional[int]:
    for position, row in enumerate(rows):
        if _cell(row, issue_column).lower() == HEADER_LABEL:
            return position
    return None


def index_rows(
    rows: Sequence[Sequence[object]],
    issue_column: int = ISSUE_COLUMN,
    *,
    prefix: str = DEFAULT_KEY_PREFIX,
) -> SheetIndex:
    """Build a :class:`SheetIndex` from the values of the active tab.

    ``rows`` must start at sheet row 1.  A missing header is not fatal: the
    first row is treated as the header and a warning is logged.
    """

    header_row = find_header_row(rows, issue_column)
    header_found = header_row is not None
    if header_row is None:
        logger.warning("Could not find header row with %r in column %d", HEADER_LABEL, issue_column + 1)
        for position, row in enumerate(rows[:DEBUG_DUMP_ROWS]):
            logger.warning("  Row %d: %r", position + 1, list(row or []))
        header_row = 0
    else:
        logger.info("Found header row at sheet row %d", header_row + 1)

    index = SheetIndex(header_row=header_row, header_found=header_found)
    first_empty: Optional[int] = None
    for position in range(header_row + 1, len(rows)):
        sheet_row = position + 1
        value = _cell(rows[position], issue_column)
        key = extract_issue_key(value, prefix=prefix)
        if key:
            previous = index.row_index.get(key)
            if previous is not None:
                logger.warning("%s appears in rows %d and %d; using row %d", key, previous, sheet_row, sheet_row)
            index.row_index[key] = sheet_row
            index.occupied_rows.add(sheet_row)
            logger.debug("Found existing %s at row %d", key, sheet_row)
        elif value:
            index.occupied_rows.add(sheet_row)
        elif first_empty is None:
            first_empty = sheet_row
            logger.debug("First empty row: %d", sheet_row)

    if first_empty is None:
        first_empty = len(rows) + 1
        logger.debug("No empty row found, will use row %d", first_empty)
    index.empty_row_cursor = first_empty
    logger.info("Indexed %d tracked issues", len(index.row_index))
    return index


__all__ = ["HEADER_LABEL", "ISSUE_COLUMN", "SheetIndex", "find_header_row", "index_rows"]
