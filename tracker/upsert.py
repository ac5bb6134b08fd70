"""Decide and apply the writes that bring the active tab up to date.

Existing issues only get their environment cell (column D) rewritten so that
metadata filled in by people or by earlier runs is never regressed.  New
issues get a full row (columns A-E) written into the next free row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional

from tracker.issue_keys import normalise_key
from tracker.models import IssueRecord, format_app, format_environment
from tracker.sheet_index import SheetIndex
from tracker.sheets_client import SheetStore

logger = logging.getLogger(__name__)

ENVIRONMENT_COLUMN = "D"
ROW_FIRST_COLUMN = "A"
ROW_LAST_COLUMN = "E"
DEFAULT_INITIAL_STATUS = "In progress"

INSERT = "insert"
UPDATE = "update"


@dataclass(frozen=True)
class CellWrite:
    """A single range write against the active tab."""

    cells: str
    values: List[List[str]]
    issue_key: str
    kind: str


@dataclass
class UpsertPlan:
    writes: List[CellWrite] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0


def issue_hyperlink(base_url: str, issue_key: str) -> str:
    return f'=HYPERLINK("{base_url.rstrip("/")}/{issue_key}", "{issue_key}")'


def plan_upserts(
    records: Iterable[IssueRecord],
    index: SheetIndex,
    *,
    base_url: str,
    initial_status: str = DEFAULT_INITIAL_STATUS,
    environment_labels: Optional[Mapping[str, str]] = None,
    app_labels: Optional[Mapping[str, str]] = None,
) -> UpsertPlan:
    """Return the ordered writes for ``records``, updating ``index`` in place."""

    plan = UpsertPlan()
    for record in records:
        issue_key = normalise_key(record.issue_key)
        if not issue_key:
            continue
        environment = format_environment(record.environment, environment_labels)
        existing_row = index.row_for(issue_key)

        if existing_row is not None:
            logger.info("Updating %s at row %d -> %s", issue_key, existing_row, environment)
            plan.writes.append(
                CellWrite(
                    cells=f"{ENVIRONMENT_COLUMN}{existing_row}",
                    values=[[environment]],
                    issue_key=issue_key,
                    kind=UPDATE,
                )
            )
            plan.updated += 1
            continue

        target_row = index.allocate_row(issue_key)
        logger.info("Adding %s at row %d", issue_key, target_row)
        plan.writes.append(
            CellWrite(
                cells=f"{ROW_FIRST_COLUMN}{target_row}:{ROW_LAST_COLUMN}{target_row}",
                values=[
                    [
                        issue_hyperlink(base_url, issue_key),
                        initial_status,
                        record.author,
                        environment,
                        format_app(record.app, app_labels),
                    ]
                ],
                issue_key=issue_key,
                kind=INSERT,
            )
        )
        plan.inserted += 1
    return plan


def apply_writes(store: SheetStore, tab: str, writes: Iterable[CellWrite]) -> int:
    """Send ``writes`` one at a time, in order.  Returns the number applied."""

    applied = 0
    for write in writes:
        store.write_range(tab, write.cells, write.values)
        applied += 1
    return applied


__all__ = [
    "CellWrite",
    "DEFAULT_INITIAL_STATUS",
    "ENVIRONMENT_COLUMN",
    "INSERT",
    "UPDATE",
    "UpsertPlan",
    "apply_writes",
    "issue_hyperlink",
    "plan_upserts",
]
