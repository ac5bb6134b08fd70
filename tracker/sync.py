"""Run one sync of issue records into the release tracking spreadsheet."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from settings import SyncSettings
from tracker.archive import rotate
from tracker.models import TERMINAL_ENVIRONMENT, IssueRecord
from tracker.sheet_index import index_rows
from tracker.sheets_client import SheetStore, require_tab
from tracker.upsert import apply_writes, plan_upserts

logger = logging.getLogger(__name__)

SHEET_COLUMNS = "A:K"


@dataclass
class SyncReport:
    inserted: int = 0
    updated: int = 0
    archived_as: Optional[str] = None


def run_environment(records: Sequence[IssueRecord]) -> str:
    """Return the environment of the run, taken from the first record."""

    return (records[0].environment or "").lower() if records else ""


def sync_issues(
    store: SheetStore,
    records: Sequence[IssueRecord],
    settings: SyncSettings,
    *,
    version: str = "",
    today: Optional[date] = None,
) -> SyncReport:
    """Upsert ``records`` into the active tab and rotate it after production deploys."""

    report = SyncReport()
    if not records:
        logger.info("No issues to sync")
        return report

    sheet_name = settings.sheet_name
    tabs = store.list_tabs()
    logger.info("Available sheets: %s", ", ".join(tab.title for tab in tabs))
    require_tab(tabs, sheet_name)

    if version:
        store.write_range(sheet_name, settings.version_cell, [[version]])
        logger.info("Set version %s!%s: %s", sheet_name, settings.version_cell, version)

    rows = store.read_range(sheet_name, SHEET_COLUMNS)
    logger.info("Found %d existing rows", len(rows))
    index = index_rows(rows, prefix=settings.issue_prefix)
    logger.info("Looking for: %s", ", ".join(record.issue_key for record in records))

    plan = plan_upserts(
        records,
        index,
        base_url=settings.jira_base_url,
        initial_status=settings.initial_status,
        environment_labels=settings.environment_labels,
        app_labels=settings.app_labels,
    )
    apply_writes(store, sheet_name, plan.writes)
    report.inserted = plan.inserted
    report.updated = plan.updated
    logger.info("Added %d new, updated %d existing", plan.inserted, plan.updated)

    if run_environment(records) == TERMINAL_ENVIRONMENT:
        logger.info("Production deploy detected, archiving %r", sheet_name)
        result = rotate(
            store,
            active_tab=sheet_name,
            template_tab=settings.template_name,
            carry_cell=settings.version_cell,
            carry_target_cell=settings.carry_target_cell,
            today=today,
        )
        report.archived_as = result.archive_name
    return report


__all__ = ["SHEET_COLUMNS", "SyncReport", "run_environment", "sync_issues"]
