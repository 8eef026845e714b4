"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

import pytest

from jira_beads_sync.errors import SourceNotFound
from jira_beads_sync.jira.models import RawIssue, parse_issue
from jira_beads_sync.jira.source import SearchResult

RawIssueFactory = Callable[..., dict[str, Any]]

_STATUS_CATEGORIES = {
    "To Do": "new",
    "In Progress": "indeterminate",
    "Done": "done",
}


def _ref(key: str, issue_type: str = "Task") -> dict[str, Any]:
    return {
        "id": key.split("-")[-1],
        "key": key,
        "fields": {"summary": f"{key} summary", "issuetype": {"name": issue_type}},
    }


def make_raw_issue(
    key: str,
    *,
    summary: str | None = None,
    issue_type: str = "Task",
    subtask: bool = False,
    status: str = "To Do",
    priority: str | None = "Medium",
    description: str = "",
    labels: Iterable[str] = (),
    assignee: dict[str, Any] | None = None,
    parent: tuple[str, str] | None = None,
    subtasks: Iterable[str] = (),
    links: Iterable[tuple[str, str, str, str]] = (),
    created: str | None = "2024-01-01T10:00:00.000+0000",
    updated: str | None = "2024-01-02T11:30:00.000+0000",
) -> dict[str, Any]:
    """Build a Jira REST v2 issue payload.

    `parent` is `(key, issue_type)`. Each link is
    `(relation_name, inward_phrase_or_outward_phrase, direction, other_key)` where
    `direction` is "inward" or "outward".
    """

    issue_links: list[dict[str, Any]] = []
    for index, (name, phrase, direction, other_key) in enumerate(links):
        link_type = {"name": name, "inward": "", "outward": ""}
        link_type[direction] = phrase
        link: dict[str, Any] = {"id": str(1000 + index), "type": link_type}
        link[f"{direction}Issue"] = _ref(other_key)
        issue_links.append(link)

    fields: dict[str, Any] = {
        "summary": summary if summary is not None else f"{key} summary",
        "description": description,
        "issuetype": {"name": issue_type, "subtask": subtask},
        "status": {
            "name": status,
            "statusCategory": {"key": _STATUS_CATEGORIES.get(status, ""), "name": status},
        },
        "priority": {"name": priority} if priority is not None else None,
        "assignee": assignee,
        "labels": list(labels),
        "issuelinks": issue_links,
        "subtasks": [_ref(k, "Sub-task") for k in subtasks],
        "created": created,
        "updated": updated,
    }
    if parent is not None:
        fields["parent"] = _ref(parent[0], parent[1])

    return {
        "id": key.split("-")[-1],
        "key": key,
        "self": f"https://jira.example.com/rest/api/2/issue/{key}",
        "fields": fields,
    }


class FakeIssueSource:
    """In-memory Issue Source that records every call."""

    def __init__(
        self,
        issues: Iterable[dict[str, Any]] = (),
        *,
        searches: dict[str, SearchResult] | None = None,
        failures: dict[str, Exception] | None = None,
    ) -> None:
        self.issues: dict[str, RawIssue] = {}
        for payload in issues:
            issue = parse_issue(payload)
            self.issues[issue.key] = issue
        self.searches = searches or {}
        self.failures = failures or {}
        self.fetched: list[str] = []
        self.queries: list[str] = []

    def fetch_issue(self, key: str) -> RawIssue:
        self.fetched.append(key)
        if key in self.failures:
            raise self.failures[key]
        try:
            return self.issues[key]
        except KeyError:
            raise SourceNotFound(f"Not found: {key}", key=key) from None

    def search(self, query: str) -> SearchResult:
        self.queries.append(query)
        return self.searches.get(query, SearchResult(keys=[], total=0))


@pytest.fixture
def raw_issue() -> RawIssueFactory:
    """Provide a factory for Jira issue payloads."""
    return make_raw_issue


@pytest.fixture
def parsed_issue(raw_issue: RawIssueFactory) -> Callable[..., RawIssue]:
    """Provide a factory for parsed RawIssue records."""

    def _factory(key: str, **kwargs: Any) -> RawIssue:
        return parse_issue(raw_issue(key, **kwargs))

    return _factory


@pytest.fixture
def isolated_config(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Point the config file and working directory at an empty temp location."""
    for name in (
        "JIRA_BASE_URL",
        "JIRA_USERNAME",
        "JIRA_API_TOKEN",
        "JIRA_SEARCH_MAX_RESULTS",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "JIRA_BEADS_SYNC_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    return tmp_path / "xdg" / "jira-beads-sync" / "config.yml"


@pytest.fixture
def fake_source(raw_issue: RawIssueFactory) -> Callable[..., FakeIssueSource]:
    """Provide a factory for in-memory Issue Sources."""

    def _factory(*payloads: dict[str, Any], **kwargs: Any) -> FakeIssueSource:
        return FakeIssueSource(payloads, **kwargs)

    return _factory


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Undo handlers installed by configure_logging during a test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
