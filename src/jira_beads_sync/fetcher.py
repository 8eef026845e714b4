"""Dependency-graph fetch.

Starting from one or more seed keys, walk every related issue reachable through
subtasks, issue links and non-epic parents, fetching each key exactly once.

Epics are never traversed through a parent reference: an issue's epic parent is
a lookup target for the converter, not a fetch target. The walk uses an explicit
stack so that depth is bounded by memory rather than the interpreter's recursion
limit; children are pushed in reverse so the visit order matches a recursive
pre-order walk (subtasks, then links inward/outward, then the parent).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from jira_beads_sync.errors import EmptyResultSet, SearchTruncated
from jira_beads_sync.jira.models import RawIssue
from jira_beads_sync.jira.source import IssueSource, label_query

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Issues gathered by a search-seeded fetch."""

    records: list[RawIssue]
    seed_keys: list[str]
    total_matches: int

    @property
    def truncated(self) -> bool:
        return self.total_matches > len(self.seed_keys)


def related_keys(issue: RawIssue) -> list[str]:
    """Keys to visit after `issue`, in traversal order."""

    fields = issue.fields
    keys = [subtask.key for subtask in fields.subtasks]
    for link in fields.issue_links:
        if link.inward_issue is not None:
            keys.append(link.inward_issue.key)
        if link.outward_issue is not None:
            keys.append(link.outward_issue.key)
    if fields.parent is not None and not fields.parent.issue_type.is_epic:
        keys.append(fields.parent.key)
    return keys


class GraphFetcher:
    """Drives an IssueSource to collect a deduplicated, flat list of issues."""

    def __init__(self, source: IssueSource) -> None:
        self._source = source

    def fetch_from(self, seed_keys: Iterable[str]) -> list[RawIssue]:
        """Fetch every issue reachable from `seed_keys`.

        Any fetch failure aborts the walk and propagates; there is no partial
        result.
        """

        visited: set[str] = set()
        records: list[RawIssue] = []
        stack = list(reversed(list(seed_keys)))

        while stack:
            key = stack.pop()
            if key in visited:
                continue
            visited.add(key)

            logger.info("Fetching issue", extra={"key": key})
            issue = self._source.fetch_issue(key)
            # Jira resolves keys case-insensitively and follows moves, so the
            # returned key can differ from the requested one.
            if issue.key != key:
                if issue.key in visited:
                    continue
                visited.add(issue.key)
            records.append(issue)

            stack.extend(reversed(related_keys(issue)))

        logger.info("Graph fetch complete", extra={"issues": len(records)})
        return records

    def fetch_by_query(self, query: str, *, strict: bool = False) -> FetchResult:
        """Seed the walk from a JQL search.

        Raises:
            EmptyResultSet: If the query matches no issues.
            SearchTruncated: If `strict` and the search returned fewer keys than
                the total number of matches.
        """

        search = self._source.search(query)
        if not search.keys:
            raise EmptyResultSet(f"No issues found for query: {query}", key=query)

        if search.truncated:
            if strict:
                raise SearchTruncated(query, len(search.keys), search.total)
            logger.warning(
                "Search results truncated; importing only the retrieved issues",
                extra={"jql": query, "retrieved": len(search.keys), "total": search.total},
            )

        logger.info("Search matched issues", extra={"jql": query, "matches": len(search.keys)})
        records = self.fetch_from(search.keys)
        return FetchResult(records=records, seed_keys=search.keys, total_matches=search.total)

    def fetch_by_label(self, label: str, *, strict: bool = False) -> FetchResult:
        return self.fetch_by_query(label_query(label), strict=strict)
