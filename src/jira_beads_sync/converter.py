"""Convert raw Jira issues into beads issues and epics.

A conversion run has three passes over the input:

1. epics are converted first and their ids recorded in the run's registry;
2. every non-epic issue is converted, resolving its epic through the registry and
   inferring a dependency on a non-epic parent for subtasks;
3. issue links add dependency edges once every issue exists.

All scratch state lives in a `ConversionContext` created per call, so a
`SchemaConverter` instance can be reused safely.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from jira_beads_sync.beads.models import (
    BeadsEpic,
    BeadsExport,
    BeadsIssue,
    Metadata,
    Priority,
    Status,
)
from jira_beads_sync.errors import EmptyResultSet, IdCollision, NilInput
from jira_beads_sync.jira.models import RawIssue
from jira_beads_sync.jira.models import Priority as JiraPriority
from jira_beads_sync.jira.models import Status as JiraStatus

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY: dict[str, Status] = {
    "new": Status.OPEN,
    "indeterminate": Status.IN_PROGRESS,
    "done": Status.CLOSED,
}

# Checked in order; the first matching substring wins ("lowest" before "low").
PRIORITY_BY_SUBSTRING: tuple[tuple[tuple[str, ...], Priority], ...] = (
    (("critical", "highest"), Priority.P0),
    (("high",), Priority.P1),
    (("medium",), Priority.P2),
    (("lowest",), Priority.P4),
    (("low",), Priority.P3),
)


@dataclass(frozen=True, slots=True)
class LinkRules:
    """Link relation phrases that imply a dependency.

    An inward phrase makes the issue depend on the link's inward issue; an
    outward phrase makes it depend on the link's outward issue. Matching is exact.
    """

    inward: frozenset[str] = frozenset({"is blocked by"})
    outward: frozenset[str] = frozenset({"depends on"})


DEFAULT_LINK_RULES = LinkRules()


@dataclass(slots=True)
class ConversionContext:
    """Registries for a single conversion run."""

    records_by_key: dict[str, RawIssue] = field(default_factory=dict)
    epic_ids: dict[str, str] = field(default_factory=dict)
    ids: dict[str, str] = field(default_factory=dict)
    issue_index: dict[str, BeadsIssue] = field(default_factory=dict)

    def register(self, issue: RawIssue) -> bool:
        """Record an issue by key and claim its beads id.

        Returns:
            False if the exact key was already registered.

        Raises:
            IdCollision: If a different key already claimed the same id.
        """

        if issue.key in self.records_by_key:
            return False
        beads_id = to_beads_id(issue.key)
        existing = self.ids.get(beads_id)
        if existing is not None:
            raise IdCollision(existing, issue.key, beads_id)
        self.ids[beads_id] = issue.key
        self.records_by_key[issue.key] = issue
        return True


def to_beads_id(jira_key: str) -> str:
    """Convert "PROJ-123" to "proj-123"."""

    return jira_key.lower()


def map_status(status: JiraStatus) -> Status:
    mapped = STATUS_BY_CATEGORY.get(status.status_category.key)
    if mapped is not None:
        return mapped

    name = status.name.lower()
    if "block" in name:
        return Status.BLOCKED
    if "progress" in name or "doing" in name:
        return Status.IN_PROGRESS
    if "done" in name or "closed" in name:
        return Status.CLOSED
    return Status.OPEN


def map_priority(priority: JiraPriority) -> Priority:
    name = priority.name.lower()
    for needles, mapped in PRIORITY_BY_SUBSTRING:
        if any(needle in name for needle in needles):
            return mapped
    return Priority.P2


def link_dependencies(issue: RawIssue, rules: LinkRules = DEFAULT_LINK_RULES) -> list[str]:
    """Jira keys `issue` depends on according to its links."""

    keys: list[str] = []
    for link in issue.fields.issue_links:
        if link.type.inward in rules.inward and link.inward_issue is not None:
            keys.append(link.inward_issue.key)
        if link.type.outward in rules.outward and link.outward_issue is not None:
            keys.append(link.outward_issue.key)
    return keys


class SchemaConverter:
    """Maps raw Jira issues onto the beads entity model."""

    def __init__(self, link_rules: LinkRules = DEFAULT_LINK_RULES) -> None:
        self._link_rules = link_rules

    def convert(self, records: Sequence[RawIssue] | None) -> BeadsExport:
        """Convert a flat list of raw issues.

        Raises:
            NilInput: If `records` is None.
            EmptyResultSet: If `records` is empty.
            IdCollision: If two keys differ only by case.
        """

        if records is None:
            raise NilInput("Jira export is nil")
        if not records:
            raise EmptyResultSet("Jira export contains no issues")

        ctx = ConversionContext()
        unique: list[RawIssue] = []
        for record in records:
            if ctx.register(record):
                unique.append(record)
            else:
                logger.warning("Skipping duplicate issue", extra={"key": record.key})

        export = BeadsExport()

        for record in unique:
            if record.is_epic:
                epic = self._convert_epic(record)
                export.epics.append(epic)
                ctx.epic_ids[record.key] = epic.id

        for record in unique:
            if record.is_epic:
                continue
            issue = self._convert_issue(record, ctx)
            export.issues.append(issue)
            ctx.issue_index[record.key] = issue

        self._add_link_dependencies(unique, ctx)

        logger.info(
            "Conversion complete",
            extra={"issues": len(export.issues), "epics": len(export.epics)},
        )
        return export

    def _convert_epic(self, record: RawIssue) -> BeadsEpic:
        fields = record.fields
        return BeadsEpic(
            id=to_beads_id(record.key),
            name=fields.summary,
            description=fields.description,
            status=map_status(fields.status),
            created=fields.created,
            updated=fields.updated,
            metadata=_metadata(record),
        )

    def _convert_issue(self, record: RawIssue, ctx: ConversionContext) -> BeadsIssue:
        fields = record.fields
        issue = BeadsIssue(
            id=to_beads_id(record.key),
            title=fields.summary,
            description=fields.description,
            status=map_status(fields.status),
            priority=map_priority(fields.priority),
            labels=list(dict.fromkeys(fields.labels)),
            created=fields.created,
            updated=fields.updated,
            metadata=_metadata(record),
        )

        if fields.assignee is not None:
            issue.assignee = fields.assignee.email_address or fields.assignee.display_name or None

        parent = fields.parent
        if parent is not None:
            if parent.issue_type.is_epic:
                # Epic missing from this batch: leave the issue unlinked.
                issue.epic = ctx.epic_ids.get(parent.key)
            elif record.is_subtask:
                issue.add_dependency(to_beads_id(parent.key))

        return issue

    def _add_link_dependencies(self, records: Sequence[RawIssue], ctx: ConversionContext) -> None:
        for record in records:
            issue = ctx.issue_index.get(record.key)
            if issue is None:
                continue
            for dep_key in link_dependencies(record, self._link_rules):
                if dep_key not in ctx.issue_index:
                    logger.debug(
                        "Skipping dependency on issue outside this conversion",
                        extra={"key": record.key, "depends_on": dep_key},
                    )
                    continue
                issue.add_dependency(to_beads_id(dep_key))


def _metadata(record: RawIssue) -> Metadata:
    return Metadata(
        jira_key=record.key,
        jira_id=record.id,
        jira_issue_type=record.issue_type.name,
    )
