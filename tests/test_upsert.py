from __future__ import annotations

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tracker.local_workbook import LocalWorkbook
from tracker.models import IssueRecord, format_app, format_environment
from tracker.sheet_index import index_rows
from tracker.upsert import INSERT, UPDATE, apply_writes, issue_hyperlink, plan_upserts

BASE_URL = "https://jira.example.com/browse"


def _record(key: str, environment: str = "internal", app: str = "web", author: str = "octocat") -> IssueRecord:
    return IssueRecord(issue_key=key, title=f"{key} change", author=author, environment=environment, app=app)


def test_format_environment_and_app_labels() -> None:
    assert format_environment("internal") == "Internal"
    assert format_environment("STAGE") == "Stage"
    assert format_environment("production") == "Production"
    assert format_environment("dev") == "dev"
    assert format_app("cm") == "CM"
    assert format_app("Admin") == "Admin"
    assert format_app("other") == "other"


def test_issue_hyperlink_embeds_key_and_base_url() -> None:
    assert issue_hyperlink(BASE_URL + "/", "ADV-5") == (
        '=HYPERLINK("https://jira.example.com/browse/ADV-5", "ADV-5")'
    )


def test_new_record_is_written_as_full_row_at_first_empty_row() -> None:
    index = index_rows([["Issue", "Status"]])

    plan = plan_upserts([_record("ADV-5", environment="stage", app="cm")], index, base_url=BASE_URL)

    assert plan.inserted == 1
    assert plan.updated == 0
    [write] = plan.writes
    assert write.kind == INSERT
    assert write.cells == "A2:E2"
    assert write.values == [
        [
            '=HYPERLINK("https://jira.example.com/browse/ADV-5", "ADV-5")',
            "In progress",
            "octocat",
            "Stage",
            "CM",
        ]
    ]
    assert index.row_index["ADV-5"] == 2


def test_existing_record_only_updates_environment_column() -> None:
    index = index_rows([["Issue"], ["ADV-1", "Done", "someone", "Internal", "Web"]])

    plan = plan_upserts([_record("adv-1 ", environment="production")], index, base_url=BASE_URL)

    assert plan.updated == 1
    assert plan.inserted == 0
    [write] = plan.writes
    assert write.kind == UPDATE
    assert write.cells == "D2"
    assert write.values == [["Production"]]


def test_consecutive_new_records_land_on_consecutive_rows() -> None:
    index = index_rows([["Issue"], ["ADV-1"], [], []])

    plan = plan_upserts([_record("ADV-2"), _record("ADV-1"), _record("ADV-3")], index, base_url=BASE_URL)

    assert [(write.issue_key, write.cells) for write in plan.writes] == [
        ("ADV-2", "A3:E3"),
        ("ADV-1", "D2"),
        ("ADV-3", "A4:E4"),
    ]


def test_repeated_key_in_one_batch_is_inserted_once() -> None:
    index = index_rows([["Issue"]])

    plan = plan_upserts([_record("ADV-7"), _record("adv-7", environment="stage")], index, base_url=BASE_URL)

    assert plan.inserted == 1
    assert plan.updated == 1
    assert [write.cells for write in plan.writes] == ["A2:E2", "D2"]


def test_insert_never_overwrites_an_existing_issue_row() -> None:
    index = index_rows([["Issue"], ["ADV-1"], [], ["ADV-2"]])

    plan = plan_upserts([_record("ADV-10"), _record("ADV-11")], index, base_url=BASE_URL)

    assert [write.cells for write in plan.writes] == ["A3:E3", "A5:E5"]


def test_custom_labels_and_status_are_used() -> None:
    index = index_rows([["Issue"]])

    plan = plan_upserts(
        [_record("ADV-1", environment="stage", app="web")],
        index,
        base_url=BASE_URL,
        initial_status="Ready for QA",
        environment_labels={"stage": "Staging"},
        app_labels={"web": "Website"},
    )

    assert plan.writes[0].values[0][1:] == ["Ready for QA", "octocat", "Staging", "Website"]


def test_apply_writes_sends_each_write_in_order() -> None:
    workbook = LocalWorkbook(tabs={"Next": [["Issue"], ["ADV-1", "Done", "a", "Internal", "Web"]]})
    index = index_rows(workbook.read_range("Next", "A:K"))
    plan = plan_upserts([_record("ADV-1", environment="stage"), _record("ADV-2")], index, base_url=BASE_URL)

    applied = apply_writes(workbook, "Next", plan.writes)

    assert applied == 2
    rows = workbook.rows("Next")
    assert rows[1] == ["ADV-1", "Done", "a", "Stage", "Web"]
    assert rows[2][0] == '=HYPERLINK("https://jira.example.com/browse/ADV-2", "ADV-2")'
