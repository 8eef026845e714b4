"""Unit tests for raw Jira issue parsing and export loading."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

import pytest

from jira_beads_sync.errors import EmptyResultSet, MalformedSourceResponse, ValidationFailure
from jira_beads_sync.jira.export import load_export, parse_export
from jira_beads_sync.jira.models import parse_issue, parse_jira_time


def test_parse_issue_reads_nested_fields(raw_issue) -> None:
    payload = raw_issue(
        "PROJ-5",
        issue_type="Sub-task",
        subtask=True,
        parent=("PROJ-1", "Story"),
        links=[("Blocks", "is blocked by", "inward", "PROJ-2")],
        assignee={"accountId": "abc", "displayName": "Jane", "emailAddress": None},
    )

    issue = parse_issue(payload)

    assert issue.key == "PROJ-5"
    assert issue.self_url.endswith("/issue/PROJ-5")
    assert issue.is_subtask
    assert not issue.is_epic
    assert issue.fields.parent is not None
    assert issue.fields.parent.key == "PROJ-1"
    assert issue.fields.parent.issue_type.name == "Story"
    link = issue.fields.issue_links[0]
    assert link.type.inward == "is blocked by"
    assert link.inward_issue is not None
    assert link.inward_issue.key == "PROJ-2"
    assert link.outward_issue is None
    assert issue.fields.assignee is not None
    assert issue.fields.assignee.email_address == ""


def test_parse_issue_treats_null_fields_as_defaults(raw_issue) -> None:
    payload = raw_issue("PROJ-1", priority=None, created=None, updated="")
    payload["fields"]["description"] = None

    issue = parse_issue(payload)

    assert issue.fields.priority.name == ""
    assert issue.fields.description == ""
    assert issue.fields.created is None
    assert issue.fields.updated is None


@pytest.mark.parametrize(
    "value",
    ["2024-01-01T10:00:00.000+0000", "2024-01-01T10:00:00Z", "2024-01-01T10:00:00+00:00"],
)
def test_parse_jira_time_accepts_jira_and_iso_formats(value: str) -> None:
    assert parse_jira_time(value) == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("mutate", "message"),
    [
        (lambda p: p.update(key=""), "no key"),
        (lambda p: p["fields"].update(summary="  "), "no summary"),
        (lambda p: p["fields"].update(issuetype={"name": ""}), "no issue type"),
    ],
)
def test_parse_issue_requires_key_summary_and_type(raw_issue, mutate, message: str) -> None:
    payload = raw_issue("PROJ-1")
    mutate(payload)

    with pytest.raises(ValidationFailure, match=message):
        parse_issue(payload)


def test_parse_issue_rejects_non_object() -> None:
    with pytest.raises(MalformedSourceResponse):
        parse_issue(["not", "an", "issue"], key="PROJ-1")


def test_parse_issue_rejects_wrong_shape(raw_issue) -> None:
    payload = raw_issue("PROJ-1")
    payload["fields"]["subtasks"] = "nope"

    with pytest.raises(MalformedSourceResponse) as exc:
        parse_issue(payload, key="PROJ-1")

    assert exc.value.key == "PROJ-1"


def test_load_export_reads_all_issues(tmp_path: Path, raw_issue) -> None:
    path = tmp_path / "export.json"
    path.write_text(
        json.dumps({"issues": [raw_issue("PROJ-1"), raw_issue("PROJ-2", issue_type="Epic")]}),
        encoding="utf-8",
    )

    issues = load_export(path)

    assert [i.key for i in issues] == ["PROJ-1", "PROJ-2"]
    assert issues[1].is_epic


def test_parse_export_rejects_invalid_json() -> None:
    with pytest.raises(MalformedSourceResponse):
        parse_export("{not json")


def test_parse_export_requires_issues_list() -> None:
    with pytest.raises(MalformedSourceResponse):
        parse_export(json.dumps({"total": 0}))


def test_parse_export_rejects_empty_issue_list() -> None:
    with pytest.raises(EmptyResultSet):
        parse_export(json.dumps({"issues": []}))


def test_parse_export_validates_each_issue(raw_issue) -> None:
    bad = raw_issue("PROJ-2", summary="")

    with pytest.raises(ValidationFailure) as exc:
        parse_export(json.dumps({"issues": [raw_issue("PROJ-1"), bad]}))

    assert exc.value.key == "PROJ-2"


def test_malformed_issue_error_names_the_key(raw_issue) -> None:
    payload = raw_issue("PROJ-7")
    payload["fields"]["subtasks"] = "nope"

    with pytest.raises(MalformedSourceResponse, match="PROJ-7"):
        parse_issue(payload)


def test_non_object_issue_error_names_the_key() -> None:
    with pytest.raises(MalformedSourceResponse, match="PROJ-8"):
        parse_issue("oops", key="PROJ-8")


def test_malformed_export_entry_error_names_the_key(raw_issue) -> None:
    bad = raw_issue("PROJ-3")
    bad["fields"]["issuelinks"] = 42

    with pytest.raises(MalformedSourceResponse, match="PROJ-3") as exc:
        parse_export(json.dumps({"issues": [raw_issue("PROJ-1"), bad]}))

    assert exc.value.key == "PROJ-3"
