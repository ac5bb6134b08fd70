"""Archive the active tab after a production deploy and start a new cycle.

Every step is a separate request against the store and runs strictly after
the previous one.  There is no rollback: if a step fails the spreadsheet is
left as it is so the failure can be inspected, and rerunning the sync is the
recovery path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from tracker.sheets_client import SheetStore, require_tab
from tracker.tab_names import archive_date_label, unique_tab_name

logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_TAB = "Next"
TEMPLATE_TAB = "Template"


@dataclass(frozen=True)
class RotationResult:
    archive_name: str
    new_tab_id: int
    carried_value: str = ""


def read_cell(store: SheetStore, tab: str, cell: str) -> str:
    values = store.read_range(tab, cell)
    if not values or not values[0]:
        return ""
    return str(values[0][0])


def rotate(
    store: SheetStore,
    *,
    active_tab: str = DEFAULT_ACTIVE_TAB,
    template_tab: str = TEMPLATE_TAB,
    carry_cell: Optional[str] = None,
    carry_target_cell: Optional[str] = None,
    today: Optional[date] = None,
) -> RotationResult:
    """Rename ``active_tab`` to a dated archive name and recreate it from the template.

    When ``carry_cell`` is given its value is read from the active tab before
    anything is renamed and, if non-empty, written to ``carry_target_cell`` of
    the new active tab.  A missing active or template tab raises
    :class:`tracker.sheets_client.SheetNotFoundError` before anything is read or changed.
    """

    tabs = store.list_tabs()
    logger.info("Existing sheets: %s", ", ".join(tab.title for tab in tabs))
    active = require_tab(tabs, active_tab)
    template = require_tab(tabs, template_tab)

    carried = ""
    if carry_cell:
        carried = read_cell(store, active_tab, carry_cell)
        logger.info("Current value of %s!%s: %r", active_tab, carry_cell, carried)

    archive_name = unique_tab_name(archive_date_label(today), [tab.title for tab in tabs])
    logger.info("Archive name: %r", archive_name)

    store.rename_tab(active.tab_id, archive_name)
    logger.info("Renamed %r -> %r", active_tab, archive_name)

    new_tab_id = store.duplicate_tab(template.tab_id)
    logger.info("Copied %r", template_tab)

    store.rename_tab(new_tab_id, active_tab)
    logger.info("Renamed copy -> %r", active_tab)

    store.move_tab(new_tab_id, 0)
    logger.info("Moved new %r to first position", active_tab)

    if carried and carry_target_cell:
        store.write_range(active_tab, carry_target_cell, [[carried]])
        logger.info("Set %s!%s to %r", active_tab, carry_target_cell, carried)

    return RotationResult(archive_name=archive_name, new_tab_id=new_tab_id, carried_value=carried)


__all__ = ["DEFAULT_ACTIVE_TAB", "RotationResult", "TEMPLATE_TAB", "read_cell", "rotate"]
