"""The Issue Source capability consumed by the graph fetcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from jira_beads_sync.jira.models import RawIssue


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Keys matched by a query, plus the total the source reported."""

    keys: list[str]
    total: int

    @property
    def truncated(self) -> bool:
        return self.total > len(self.keys)


class IssueSource(Protocol):
    """Anything that can fetch a single issue by key and search by query."""

    def fetch_issue(self, key: str) -> RawIssue:
        """Fetch one issue.

        Raises:
            SourceNotFound, SourceUnauthorized, SourceUnavailable,
            MalformedSourceResponse, ValidationFailure
        """
        ...

    def search(self, query: str) -> SearchResult:
        """Return the keys matching a JQL query."""
        ...


def label_query(label: str) -> str:
    """Build the JQL that matches issues carrying `label`."""

    escaped = label.replace('"', '\\"')
    return f'labels = "{escaped}"'
